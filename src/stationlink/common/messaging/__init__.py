from .invoker import CommandCall, CommandInvoker
from .launcher import build_launch_command, connect_or_launch
from .status import CallResult, Status, classify, read_status
from .transport import SocketTransport
from .utils import (
    InvalidItemError,
    LicenseError,
    ProtocolFault,
    RemoteCallError,
    RemoteError,
    StationConnectionError,
    StationError,
    StationTimeoutError,
    TransportError,
)

__all__ = [
    "SocketTransport",
    "connect_or_launch",
    "build_launch_command",
    "CommandInvoker",
    "CommandCall",
    "Status",
    "CallResult",
    "classify",
    "read_status",
    "StationError",
    "TransportError",
    "StationConnectionError",
    "StationTimeoutError",
    "ProtocolFault",
    "RemoteCallError",
    "InvalidItemError",
    "RemoteError",
    "LicenseError",
]

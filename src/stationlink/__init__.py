"""
stationlink

Python client for remote controlling a station (simulation / offline
programming) application over its TCP command protocol.
"""

import logging

from stationlink.common.matrix import DynamicMatrix
from stationlink.common.messaging.status import CallResult, Status
from stationlink.common.messaging.utils import (
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
from stationlink.common.types import (
    NULL_HANDLE,
    ItemTarget,
    JointsTarget,
    PoseTarget,
    RemoteHandle,
)
from stationlink.configs.station_config import StationCfg
from stationlink.interfaces import Item, Station

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

__all__ = [
    "Station",
    "Item",
    "StationCfg",
    "DynamicMatrix",
    "RemoteHandle",
    "NULL_HANDLE",
    "JointsTarget",
    "PoseTarget",
    "ItemTarget",
    "Status",
    "CallResult",
    "StationError",
    "TransportError",
    "StationConnectionError",
    "StationTimeoutError",
    "ProtocolFault",
    "RemoteCallError",
    "InvalidItemError",
    "RemoteError",
    "LicenseError",
    "__version__",
]

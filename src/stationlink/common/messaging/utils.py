import logging
import socket
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .status import CallResult

logger = logging.getLogger(__name__)


# Exceptions
class StationError(Exception):
    """Base exception for all station link failures"""
    pass


class TransportError(StationError):
    """Failure of the byte stream itself. The connection must be discarded."""
    pass


class StationConnectionError(TransportError):
    """Cannot open, handshake, or keep the connection to the station"""
    pass


class StationTimeoutError(TransportError):
    """No complete response within the read timeout.

    Distinct from :class:`StationConnectionError`: the socket may still be
    open, but the read position inside the current frame is undefined.
    """
    pass


class ProtocolFault(TransportError):
    """Malformed or unexpected data on the wire (bad counts, unknown status)"""
    pass


class RemoteCallError(StationError):
    """The station answered, but classified the call as failed."""

    def __init__(self, result: "CallResult"):
        self.result = result
        super().__init__(f"{result.status.name}: {result.message}")

    @property
    def message(self) -> Optional[str]:
        return self.result.message


class InvalidItemError(RemoteCallError):
    """A handle argument no longer refers to a live station object (status 1)"""
    pass


class RemoteError(RemoteCallError):
    """The station reported an error for the call (status 3)"""
    pass


class LicenseError(RemoteCallError):
    """The station rejected the call because of its license (status 9)"""
    pass


def create_client_socket(host: str, port: int, timeout: float) -> socket.socket:
    """Create a connected TCP socket with error handling.

    Raises:
        StationConnectionError: If the endpoint refuses or does not answer
            within *timeout* seconds.
    """
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except socket.timeout as e:
        raise StationConnectionError(f"Timed out connecting to {host}:{port}") from e
    except OSError as e:
        raise StationConnectionError(f"Cannot connect to {host}:{port}: {e}") from e
    sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    return sock

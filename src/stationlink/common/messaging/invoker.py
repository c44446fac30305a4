"""Send-then-receive choreography shared by every remote operation.

A remote call is one frame on the connection::

    keyword line -> arguments -> results -> status word [-> message line]

:meth:`CommandInvoker.call` opens the frame and hands back a
:class:`CommandCall` bound to a read timeout.  The caller sends its
arguments and reads its results in the fixed order of the operation, then
finishes with :meth:`CommandCall.check_status`.  Any other failure inside
the frame leaves the stream position undefined, so the connection is closed
and the next call reconnects.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import numpy as np

from stationlink.common.matrix import DynamicMatrix
from stationlink.common.types import MoveTarget, RemoteHandle

from . import codec
from .status import CallResult, Status, read_status
from .transport import SocketTransport
from .utils import RemoteCallError, StationConnectionError, TransportError

logger = logging.getLogger(__name__)


def _as_handle(item: Any) -> Optional[RemoteHandle]:
    if item is None or isinstance(item, RemoteHandle):
        return item
    handle = getattr(item, "handle", None)
    if isinstance(handle, RemoteHandle):
        return handle
    raise TypeError(f"Expected an item or a RemoteHandle, got {type(item).__name__}")


class CommandCall:
    """One in-flight command frame.

    Reads use the call's timeout unless a per-read ``timeout`` is given.
    """

    def __init__(self, transport: SocketTransport, keyword: str, timeout: Optional[float] = None):
        self.transport = transport
        self.keyword = keyword
        self.timeout = transport.default_timeout if timeout is None else timeout
        self.result: Optional[CallResult] = None

    def _timeout(self, timeout: Optional[float]) -> float:
        return self.timeout if timeout is None else timeout

    # Senders
    def send_int(self, value: int) -> None:
        codec.send_int(self.transport, value)

    def send_line(self, text: str) -> None:
        codec.send_line(self.transport, text)

    def send_array(self, values: Any) -> None:
        codec.send_array(self.transport, values)

    def send_pose(self, pose: Any) -> None:
        codec.send_pose(self.transport, pose)

    def send_xyz(self, xyz: Any) -> None:
        codec.send_xyz(self.transport, xyz)

    def send_item(self, item: Any) -> None:
        """Send an Item, a :class:`RemoteHandle` or ``None`` (null handle)."""
        codec.send_item(self.transport, _as_handle(item))

    def send_matrix2d(self, matrix: Any) -> None:
        codec.send_matrix2d(self.transport, matrix)

    def send_move_target(self, target: MoveTarget) -> None:
        codec.send_move_target(self.transport, target)

    # Receivers
    def recv_int(self, timeout: Optional[float] = None) -> int:
        return codec.recv_int(self.transport, self._timeout(timeout))

    def recv_line(self, timeout: Optional[float] = None) -> str:
        return codec.recv_line(self.transport, self._timeout(timeout))

    def recv_array(self, timeout: Optional[float] = None) -> np.ndarray:
        return codec.recv_array(self.transport, self._timeout(timeout))

    def recv_pose(self, timeout: Optional[float] = None) -> np.ndarray:
        return codec.recv_pose(self.transport, self._timeout(timeout))

    def recv_xyz(self, timeout: Optional[float] = None) -> np.ndarray:
        return codec.recv_xyz(self.transport, self._timeout(timeout))

    def recv_item(self, timeout: Optional[float] = None) -> RemoteHandle:
        return codec.recv_item(self.transport, self._timeout(timeout))

    def recv_matrix2d(self, timeout: Optional[float] = None) -> DynamicMatrix:
        return codec.recv_matrix2d(self.transport, self._timeout(timeout))

    # Status
    def check_status(self, timeout: Optional[float] = None) -> CallResult:
        """Read the status word.  A communication fault closes the connection."""
        result = read_status(self.transport, self._timeout(timeout))
        if result.status == Status.COMMUNICATION:
            logger.error(f"Closing station connection after '{self.keyword}' (status {result.code})")
            self.transport.close()
        self.result = result
        return result

    def finish(self, timeout: Optional[float] = None) -> CallResult:
        """Read the status word and raise unless the call succeeded."""
        return self.check_status(timeout).raise_for_status()


class CommandInvoker:
    """Runs command frames over one transport, one at a time.

    Parameters:
        transport: The connection to drive.
        connect: Called with the transport when it is closed at the start of
            a call; returns whether a connection was established.
    """

    def __init__(
        self,
        transport: SocketTransport,
        connect: Optional[Callable[[SocketTransport], bool]] = None,
    ):
        self.transport = transport
        self._connect = connect
        self._lock = threading.Lock()

    def ensure_connected(self) -> None:
        if self.transport.is_open:
            return
        if self._connect is None or not self._connect(self.transport):
            raise StationConnectionError("Not connected to the station")

    @contextmanager
    def call(self, keyword: str, timeout: Optional[float] = None) -> Iterator[CommandCall]:
        """Open a command frame for *keyword*.

        The frame is bound to *timeout* seconds per read (the transport default
        when ``None``); the transport's own default is left untouched.  Any
        failure other than a :class:`RemoteCallError` (raised only once the
        status word was read) leaves a partial frame on the stream, so the
        connection is dropped.
        """
        if not self._lock.acquire(blocking=False):
            raise RuntimeError(f"Station connection is busy; cannot start '{keyword}'")
        try:
            self.ensure_connected()
            command = CommandCall(self.transport, keyword, timeout)
            try:
                command.send_line(keyword)
                yield command
            except RemoteCallError:
                raise
            except TransportError as e:
                logger.error(f"'{keyword}' failed, dropping station connection: {e}")
                self.transport.close()
                raise
            except Exception as e:
                logger.error(f"'{keyword}' aborted mid-frame, dropping station connection: {e!r}")
                self.transport.close()
                raise
        finally:
            self._lock.release()

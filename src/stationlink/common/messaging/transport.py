"""Blocking TCP transport for the station protocol.

:class:`SocketTransport` owns exactly one duplex byte stream to the station
and exposes the primitives the wire codec is built on: linefeed-delimited
text and exact-length raw bytes.  All reads share one receive buffer, so text
and binary fields can be freely interleaved inside a frame.

Every read takes an explicit ``timeout`` (seconds).  ``None`` selects the
transport's :attr:`default_timeout`; the default itself is fixed at
construction and never modified by a call.
"""

from __future__ import annotations

import logging
import socket
import subprocess
from time import monotonic
from typing import Optional

from stationlink.configs.constants import network

from .handshake import perform_handshake
from .utils import (
    StationConnectionError,
    StationTimeoutError,
    create_client_socket,
)

logger = logging.getLogger(__name__)


class SocketTransport:
    """One connection to a station endpoint.

    Parameters:
        default_timeout: Read timeout in seconds used when a read does not
            pass its own.
    """

    def __init__(self, default_timeout: float = network.API_TIMEOUT_S) -> None:
        if default_timeout <= 0:
            raise ValueError(f"default_timeout must be positive, got {default_timeout}")
        self._default_timeout = float(default_timeout)
        self._sock: Optional[socket.socket] = None
        self._buffer = bytearray()
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        # Station process, only when this client launched it
        self.process: Optional[subprocess.Popen] = None

    @classmethod
    def attach(cls, sock: socket.socket, default_timeout: float = network.API_TIMEOUT_S) -> "SocketTransport":
        """Wrap an already connected socket (no handshake is performed)."""
        transport = cls(default_timeout)
        transport._sock = sock
        return transport

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def pending(self) -> int:
        """Number of received bytes not consumed yet."""
        return len(self._buffer)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, host: str = network.DEFAULT_HOST, port: int = network.DEFAULT_PORT,
                timeout: Optional[float] = None) -> bool:
        """Open the stream and run the startup handshake.

        Returns *False* (never raises) when the endpoint refuses, does not
        answer within *timeout*, or answers with something other than the
        ready marker.  On failure no socket is left open.
        """
        self.close()
        timeout = self._default_timeout if timeout is None else timeout
        host = host or network.DEFAULT_HOST
        try:
            self._sock = create_client_socket(host, port, timeout)
        except StationConnectionError as e:
            logger.debug(f"Station not reachable: {e}")
            return False

        if not perform_handshake(self, timeout):
            self.close()
            return False

        self.host = host
        self.port = port
        logger.info(f"Connected to station at {host}:{port}")
        return True

    def close(self) -> None:
        """Release the stream.  Safe to call multiple times.

        A station process launched by this transport keeps running; use
        :meth:`terminate_process` to stop it.
        """
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                logger.warning(f"Error closing station socket: {e}")
            self._sock = None
            logger.debug("Station connection closed")
        self._buffer.clear()

    def terminate_process(self, timeout: float = 5.0) -> None:
        """Stop the station process launched by this transport, if any."""
        process, self.process = self.process, None
        if process is None or process.poll() is not None:
            return
        logger.info(f"Terminating station process {process.pid}")
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Station process {process.pid} did not terminate gracefully - force killing")
            process.kill()
            process.wait(timeout=timeout)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def write_bytes(self, data: bytes) -> None:
        sock = self._require_socket()
        sock.settimeout(self._default_timeout)
        try:
            sock.sendall(data)
        except socket.timeout as e:
            raise StationTimeoutError("Timed out sending to station") from e
        except OSError as e:
            raise StationConnectionError(f"Send to station failed: {e}") from e

    def write_line(self, text: str) -> None:
        if "\n" in text:
            raise ValueError("Line payload must not contain a line feed")
        self.write_bytes(text.encode("utf-8") + network.LINE_TERMINATOR)

    def read_bytes(self, n: int, timeout: Optional[float] = None) -> bytes:
        """Block until exactly *n* bytes arrived, or raise on timeout."""
        deadline = self._deadline(timeout)
        while len(self._buffer) < n:
            self._fill(deadline)
        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data

    def read_some(self, max_n: int, timeout: Optional[float] = None) -> bytes:
        """Return between 1 and *max_n* bytes, waiting for at least one."""
        if max_n <= 0:
            return b""
        if not self._buffer:
            self._fill(self._deadline(timeout))
        data = bytes(self._buffer[:max_n])
        del self._buffer[:max_n]
        return data

    def read_line(self, timeout: Optional[float] = None) -> str:
        """Read one UTF-8 line, without its terminator."""
        deadline = self._deadline(timeout)
        while True:
            end = self._buffer.find(network.LINE_TERMINATOR)
            if end >= 0:
                break
            self._fill(deadline)
        raw = bytes(self._buffer[:end])
        del self._buffer[:end + 1]
        return raw.decode("utf-8", errors="replace").rstrip("\r")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise StationConnectionError("Not connected to station")
        return self._sock

    def _deadline(self, timeout: Optional[float]) -> float:
        return monotonic() + (self._default_timeout if timeout is None else timeout)

    def _fill(self, deadline: float) -> None:
        sock = self._require_socket()
        remaining = deadline - monotonic()
        if remaining <= 0:
            raise StationTimeoutError("Timed out waiting for station response")
        sock.settimeout(remaining)
        try:
            chunk = sock.recv(network.RECV_CHUNK_SIZE)
        except socket.timeout as e:
            raise StationTimeoutError("Timed out waiting for station response") from e
        except OSError as e:
            raise StationConnectionError(f"Receive from station failed: {e}") from e
        if not chunk:
            raise StationConnectionError("Connection closed by station")
        self._buffer.extend(chunk)

    def __repr__(self) -> str:
        state = f"{self.host}:{self.port}" if self.is_open else "closed"
        return f"<SocketTransport {state}>"

import os
import socket
import struct
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from stationlink.common.messaging.transport import SocketTransport

HANDSHAKE_REQUEST = b"CMD_START\n1 0\n"


# ---------------------------------------------------------------------------
# Wire helpers for building expected byte streams
# ---------------------------------------------------------------------------

def i32(value: int) -> bytes:
    return struct.pack(">i", value)


def f64(*values: float) -> bytes:
    return struct.pack(f">{len(values)}d", *values)


def handle(handle_id: int, item_type: Optional[int] = None) -> bytes:
    """Handle as sent by the client (id only) or by the station (id + type)."""
    data = struct.pack(">Q", handle_id)
    if item_type is not None:
        data += i32(item_type)
    return data


def line(text: str) -> bytes:
    return text.encode("utf-8") + b"\n"


def array(*values: float) -> bytes:
    return i32(len(values)) + f64(*values)


STATUS_OK = i32(0)


# ---------------------------------------------------------------------------
# Loopback transport
# ---------------------------------------------------------------------------

@pytest.fixture
def loopback():
    """A connected ``(client_transport, server_socket)`` pair."""
    client_sock, server_sock = socket.socketpair()
    server_sock.settimeout(2.0)
    transport = SocketTransport.attach(client_sock)
    yield transport, server_sock
    transport.close()
    server_sock.close()


def recv_exactly(sock: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = sock.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


# ---------------------------------------------------------------------------
# Scripted station server
# ---------------------------------------------------------------------------

@dataclass
class ScriptedStation:
    """Minimal TCP station: answers the handshake, then replays ``replies``.

    Every byte the client sends after the handshake is recorded in
    ``received`` until the client disconnects.
    """
    replies: bytes = b""
    ready_reply: bytes = b"READY\n"
    port: int = 0
    received: bytes = b""
    handshake: bytes = b""
    connections: int = 0
    _server: Optional[socket.socket] = field(default=None, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, repr=False)

    def start(self) -> "ScriptedStation":
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server.bind(("127.0.0.1", self.port))
        server.listen(1)
        server.settimeout(5.0)
        self.port = server.getsockname()[1]
        self._server = server
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()
        return self

    def _serve(self) -> None:
        try:
            conn, _ = self._server.accept()
        except OSError:
            return
        self.connections += 1
        with conn:
            conn.settimeout(5.0)
            buffer = b""
            received = b""
            try:
                while buffer.count(b"\n") < 2:
                    chunk = conn.recv(4096)
                    if not chunk:
                        return
                    buffer += chunk
                first = buffer.index(b"\n")
                end = buffer.index(b"\n", first + 1) + 1
                self.handshake, received = buffer[:end], buffer[end:]
                conn.sendall(self.ready_reply + self.replies)
                while True:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    received += chunk
            except OSError:
                pass
            self.received = received

    def join(self, timeout: float = 5.0) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def stop(self) -> None:
        if self._server is not None:
            self._server.close()
        self.join()


@pytest.fixture
def station_server():
    """Factory for scripted stations; all are stopped after the test."""
    servers: List[ScriptedStation] = []

    def _make(replies: bytes = b"", **kwargs) -> ScriptedStation:
        server = ScriptedStation(replies=replies, **kwargs).start()
        servers.append(server)
        return server

    yield _make
    for server in servers:
        server.stop()


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ---------------------------------------------------------------------------
# Fake station process
# ---------------------------------------------------------------------------

class FakeProcess:
    """Stand-in for ``subprocess.Popen`` whose stdout is an OS pipe."""

    def __init__(self, argv, output: List[bytes], delay_s: float, on_running=None):
        self.args = argv
        self.pid = 4242
        self.returncode = None
        read_fd, write_fd = os.pipe()
        self.stdout = os.fdopen(read_fd, "rb")
        self._write_fd = write_fd
        self._writer = threading.Thread(
            target=self._write, args=(output, delay_s, on_running), daemon=True
        )
        self._writer.start()

    def _write(self, output, delay_s, on_running):
        time.sleep(delay_s)
        with os.fdopen(self._write_fd, "wb") as out:
            for chunk in output:
                if b"running" in chunk.lower() and on_running is not None:
                    on_running()
                out.write(chunk)
                out.flush()

    def poll(self):
        return self.returncode

    def terminate(self):
        self.returncode = -15

    def kill(self):
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


@pytest.fixture
def fake_popen():
    """Factory building a ``popen`` callable that records its argv."""
    launched: List[FakeProcess] = []

    def _factory(output: List[bytes], delay_s: float = 0.0, on_running=None):
        def _popen(argv, **kwargs):
            process = FakeProcess(argv, output, delay_s, on_running)
            launched.append(process)
            return process

        _popen.launched = launched
        return _popen

    yield _factory
    for process in launched:
        process.stdout.close()

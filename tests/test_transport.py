import socket

import pytest

from conftest import HANDSHAKE_REQUEST, free_port
from stationlink.common.messaging.transport import SocketTransport
from stationlink.common.messaging.utils import StationConnectionError, StationTimeoutError


def test_connect_performs_handshake(station_server):
    server = station_server()
    transport = SocketTransport()
    assert transport.connect("127.0.0.1", server.port)
    assert transport.is_open
    transport.close()
    server.join()
    assert server.handshake == HANDSHAKE_REQUEST


def test_connect_rejects_wrong_ready_marker(station_server):
    server = station_server(ready_reply=b"HELLO\n")
    transport = SocketTransport()
    assert not transport.connect("127.0.0.1", server.port)
    assert not transport.is_open


def test_connect_refused_returns_false():
    transport = SocketTransport()
    assert not transport.connect("127.0.0.1", free_port(), timeout=0.5)
    assert not transport.is_open


def test_close_is_idempotent(loopback):
    transport, _ = loopback
    transport.close()
    transport.close()
    assert not transport.is_open


def test_write_after_close_raises(loopback):
    transport, _ = loopback
    transport.close()
    with pytest.raises(StationConnectionError):
        transport.write_line("G_Item")


def test_read_timeout_leaves_default_untouched(loopback):
    transport, _ = loopback
    with pytest.raises(StationTimeoutError):
        transport.read_bytes(4, timeout=0.05)
    assert transport.default_timeout == 1.0


def test_peer_close_is_connection_error(loopback):
    transport, server = loopback
    server.sendall(b"par")
    server.shutdown(socket.SHUT_WR)
    with pytest.raises(StationConnectionError):
        transport.read_line()


def test_text_and_binary_share_one_buffer(loopback):
    transport, server = loopback
    server.sendall(b"abc\n\x00\x01rest\n")
    assert transport.read_line() == "abc"
    assert transport.read_bytes(2) == b"\x00\x01"
    assert transport.read_some(100) == b"rest\n"
    assert transport.pending == 0


def test_invalid_default_timeout():
    with pytest.raises(ValueError):
        SocketTransport(default_timeout=0)


def test_terminate_process_is_explicit(loopback, fake_popen):
    transport, _ = loopback
    process = fake_popen([b"Running\n"])(["station"])
    transport.process = process

    transport.close()
    assert process.poll() is None

    transport.terminate_process()
    assert process.poll() == -15
    assert transport.process is None

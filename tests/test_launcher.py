import io
import os
import queue
import time

from conftest import free_port
from stationlink.common.messaging.launcher import (
    StdoutLineReader,
    build_launch_command,
    connect_or_launch,
    wait_for_running,
)
from stationlink.common.messaging.transport import SocketTransport
from stationlink.configs.constants import network


def test_launch_command_appends_port_only_when_non_default():
    assert build_launch_command("/opt/station", "/NOSPLASH  /DEBUG") == ["/opt/station", "/NOSPLASH", "/DEBUG"]
    assert build_launch_command("/opt/station", "", 20501) == ["/opt/station", "/PORT=20501"]
    assert build_launch_command("/opt/station", "", network.DEFAULT_PORT) == ["/opt/station"]


def test_connects_without_launching_when_listening(station_server, fake_popen):
    server = station_server()
    popen = fake_popen([])
    transport = SocketTransport()
    assert connect_or_launch(transport, "/opt/station", port=server.port, popen=popen)
    assert popen.launched == []
    transport.close()


def test_launches_and_connects_once_running(station_server, fake_popen):
    port = free_port()
    started = []

    def _start_server():
        started.append(station_server(port=port))

    popen = fake_popen(
        [b"Loading station...\n", b"Server Running\n", b"extra output\n"],
        delay_s=0.2,
        on_running=_start_server,
    )
    transport = SocketTransport()
    t0 = time.monotonic()
    assert connect_or_launch(transport, "/opt/station", args="/NOSPLASH", port=port, popen=popen,
                             startup_timeout=5.0, line_timeout=2.0)
    assert time.monotonic() - t0 >= 0.2
    assert transport.is_open
    assert transport.process is popen.launched[0]
    assert popen.launched[0].args == ["/opt/station", "/NOSPLASH", f"/PORT={port}"]

    transport.close()
    started[0].join()
    assert started[0].connections == 1
    assert started[0].handshake.startswith(b"CMD_START\n")


def test_launch_fails_when_output_ends_without_marker(fake_popen):
    popen = fake_popen([b"Loading\n", b"Crashed\n"])
    transport = SocketTransport()
    assert not connect_or_launch(transport, "/opt/station", port=free_port(), popen=popen,
                                 timeout=0.2, startup_timeout=2.0, line_timeout=1.0)
    assert not transport.is_open


def test_launch_fails_when_binary_missing():
    def _missing(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    transport = SocketTransport()
    assert not connect_or_launch(transport, "/does/not/exist", port=free_port(), popen=_missing, timeout=0.2)
    assert transport.process is None


def test_wait_for_running_times_out_per_line():
    lines = queue.Queue()
    lines.put("starting")
    t0 = time.monotonic()
    assert not wait_for_running(lines, startup_timeout=5.0, line_timeout=0.1)
    assert time.monotonic() - t0 < 2.0


def test_reader_handles_text_streams():

    lines = queue.Queue()
    reader = StdoutLineReader(io.StringIO("one\nSTATION RUNNING\n"), lines)
    reader.start()
    reader.join(1.0)
    assert wait_for_running(lines, startup_timeout=1.0, line_timeout=0.5)


def test_live_station_is_not_launched_twice(fake_popen):
    popen = fake_popen([b"Server Running\n"])
    transport = SocketTransport()
    port = free_port()
    for _ in range(2):
        assert not connect_or_launch(transport, "/opt/station", port=port, popen=popen,
                                     timeout=0.2, startup_timeout=2.0, line_timeout=1.0)
    assert len(popen.launched) == 1
    assert transport.process is popen.launched[0]

    # once the first process exited, starting a new one is allowed
    popen.launched[0].terminate()
    assert not connect_or_launch(transport, "/opt/station", port=port, popen=popen,
                                 timeout=0.2, startup_timeout=2.0, line_timeout=1.0)
    assert len(popen.launched) == 2


def test_output_after_running_is_not_queued():
    read_fd, write_fd = os.pipe()
    stream = os.fdopen(read_fd, "rb")
    lines = queue.Queue()
    reader = StdoutLineReader(stream, lines)
    reader.start()
    with os.fdopen(write_fd, "wb") as out:
        out.write(b"Loading\nServer Running\n")
        out.flush()
        assert wait_for_running(lines, startup_timeout=2.0, line_timeout=1.0)
        reader.detach()
        for i in range(200):
            out.write(f"simulation step {i}\n".encode())
    reader.join(2.0)
    stream.close()
    assert not reader.is_alive()
    assert lines.empty()

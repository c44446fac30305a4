"""Start the station application on demand.

The station is a long-lived GUI/simulation process.  A client should be able
to "just use" it: if nothing answers on the configured port, the binary is
spawned once and its standard output is watched until it reports that it is
running, then the connection is retried exactly once.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
from time import monotonic
from typing import IO, Callable, List, Optional

from stationlink.configs.constants import network

from .transport import SocketTransport

logger = logging.getLogger(__name__)

_EOF = None


def build_launch_command(binary_path: str, args: str = "", port: int = network.DEFAULT_PORT) -> List[str]:
    """Return the argv used to start the station.

    *args* is a space separated argument string.  ``/PORT=<port>`` is
    appended when a non-default port is requested.
    """
    argv = [binary_path] + args.split()
    if port != network.DEFAULT_PORT:
        argv.append(f"/PORT={port}")
    return argv


class StdoutLineReader(threading.Thread):
    """Pump lines from a process stream into a queue; ``None`` marks EOF.

    After :meth:`detach` the station keeps printing for its whole life, so
    lines are only logged at DEBUG and no longer queued.
    """

    def __init__(self, stream: IO, lines: "queue.Queue[Optional[str]]"):
        super().__init__(daemon=True, name="StationStdoutReader")
        self._stream = stream
        self._lines = lines
        self._detached = threading.Event()

    def detach(self) -> None:
        """Stop queueing lines and drop those nobody consumed."""
        self._detached.set()
        while True:
            try:
                self._lines.get_nowait()
            except queue.Empty:
                break

    def run(self) -> None:
        try:
            while True:
                raw = self._stream.readline()
                if not raw:
                    break
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="replace")
                line = raw.strip()
                if self._detached.is_set():
                    logger.debug(f"Station process: {line}")
                else:
                    self._lines.put(line)
        except (OSError, ValueError) as e:
            logger.debug(f"Station stdout closed: {e}")
        finally:
            if not self._detached.is_set():
                self._lines.put(_EOF)


def wait_for_running(
    lines: "queue.Queue[Optional[str]]",
    startup_timeout: float,
    line_timeout: float,
) -> bool:
    """Consume stdout lines until one contains the running marker.

    Each line wait is bounded by *line_timeout*; the whole wait by
    *startup_timeout*.
    """
    deadline = monotonic() + startup_timeout
    while True:
        remaining = deadline - monotonic()
        if remaining <= 0:
            logger.error(f"Station did not report running within {startup_timeout:.1f}s")
            return False
        try:
            line = lines.get(timeout=min(line_timeout, remaining))
        except queue.Empty:
            logger.error(f"No output from station for {line_timeout:.1f}s")
            return False
        if line is _EOF:
            logger.error("Station process closed its output before reporting running")
            return False
        logger.debug(f"Station process: {line}")
        if network.RUNNING_MARKER in line.lower():
            return True


def connect_or_launch(
    transport: SocketTransport,
    binary_path: str = network.DEFAULT_STATION_BIN,
    args: str = "",
    host: str = network.DEFAULT_HOST,
    port: int = network.DEFAULT_PORT,
    timeout: Optional[float] = None,
    startup_timeout: float = network.STARTUP_TIMEOUT_S,
    line_timeout: float = network.STARTUP_LINE_TIMEOUT_S,
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> bool:
    """Connect to the station, starting it first if nothing is listening.

    The station is started at most once per transport: while a process
    launched earlier is still alive, a failed connect is reported as is.

    Args:
        transport: Transport to connect.
        binary_path: Station executable.
        args: Space separated extra arguments for the station.
        host: Station host.
        port: Station port.
        timeout: Connect/handshake timeout (seconds).
        startup_timeout: Upper bound on waiting for the running marker.
        line_timeout: Upper bound on waiting for each stdout line.
        popen: Process spawn facility (``subprocess.Popen`` compatible).

    Returns:
        True once connected and handshaken, False otherwise.
    """
    if transport.connect(host, port, timeout):
        return True

    running = transport.process
    if running is not None and running.poll() is None:
        logger.error(f"Station process {running.pid} is alive but not accepting connections")
        return False

    argv = build_launch_command(binary_path, args, port)
    logger.info(f"...Trying to start station: {' '.join(argv)}")
    try:
        process = popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        logger.error(f"Could not start station {binary_path}: {e}")
        return False
    transport.process = process

    lines: "queue.Queue[Optional[str]]" = queue.Queue()
    reader = StdoutLineReader(process.stdout, lines)
    reader.start()
    try:
        started = wait_for_running(lines, startup_timeout, line_timeout)
    finally:
        reader.detach()
    if not started:
        logger.error("Could not start station!")
        return False

    logger.info("Station is running... connecting")
    if transport.connect(host, port, timeout):
        return True
    logger.error("Station is running but the connection was refused")
    return False

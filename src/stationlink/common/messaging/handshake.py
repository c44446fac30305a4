"""Startup handshake for the station protocol.

The handshake is a one-shot text exchange performed right after the TCP
connection opens, before any command frame may be sent:

    client: CMD_START
    client: 1 0
    server: READY ...

The second line carries the protocol major/minor version.  Anything other
than a reply starting with ``READY`` means we reached the wrong service (or a
station that is still booting) and the connection must not be used.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from stationlink.configs.constants import network

from .utils import TransportError

if TYPE_CHECKING:
    from .transport import SocketTransport

logger = logging.getLogger(__name__)

__all__ = [
    "perform_handshake",
]


def perform_handshake(transport: "SocketTransport", timeout: Optional[float] = None) -> bool:
    """Send the start marker and wait up to *timeout* seconds for ``READY``.

    Returns
    -------
    bool
        *True* if the station acknowledged, *False* on timeout, I/O failure
        or an unexpected reply.
    """
    try:
        transport.write_line(network.START_MARKER)
        transport.write_line(network.PROTOCOL_VERSION)
        reply = transport.read_line(timeout=timeout)
    except TransportError as e:
        logger.warning(f"Handshake with station failed: {e}")
        return False

    if not reply.startswith(network.READY_MARKER):
        logger.warning(f"Unexpected handshake reply from station: {reply!r}")
        return False
    return True

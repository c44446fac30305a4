"""Decode the status word that terminates every command frame."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .transport import SocketTransport
from .utils import (
    InvalidItemError,
    LicenseError,
    ProtocolFault,
    RemoteError,
)

logger = logging.getLogger(__name__)

INVALID_ITEM_MESSAGE = (
    "Invalid item provided: The item identifier provided is not valid or it does not exist."
)


class Status(IntEnum):
    OK = 0
    INVALID_ITEM = 1
    WARNING = 2
    ERROR = 3
    LICENSE = 9
    COMMUNICATION = -1


@dataclass(frozen=True)
class CallResult:
    """Outcome of one command frame."""
    status: Status
    code: int
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (Status.OK, Status.WARNING)

    def raise_for_status(self) -> "CallResult":
        """Return ``self`` on success, raise the matching exception otherwise."""
        if self.ok:
            return self
        if self.status == Status.INVALID_ITEM:
            raise InvalidItemError(self)
        if self.status == Status.ERROR:
            raise RemoteError(self)
        if self.status == Status.LICENSE:
            raise LicenseError(self)
        raise ProtocolFault(f"Communication problems with the station (status code {self.code})")


def classify(code: int) -> Status:
    """Map a raw status word to :class:`Status`.  Unknown values are
    communication faults."""
    try:
        return Status(code)
    except ValueError:
        return Status.COMMUNICATION


def read_status(transport: SocketTransport, timeout: Optional[float] = None) -> CallResult:
    """Read the status word and, for warnings and errors, its message line."""
    raw = transport.read_bytes(4, timeout)
    code = int.from_bytes(raw, "big", signed=True)
    status = classify(code)

    if status == Status.OK:
        return CallResult(status, code)
    if status == Status.WARNING:
        message = transport.read_line(timeout)
        logger.warning(f"Station warning: {message}")
        return CallResult(status, code, message)
    if status == Status.ERROR:
        message = transport.read_line(timeout)
        logger.error(f"Station error: {message}")
        return CallResult(status, code, message)
    if status == Status.INVALID_ITEM:
        return CallResult(status, code, INVALID_ITEM_MESSAGE)
    if status == Status.LICENSE:
        logger.error("Invalid station license")
        return CallResult(status, code, "Invalid station license")

    logger.error(f"Communication problems with the station (status code {code})")
    return CallResult(Status.COMMUNICATION, code, f"Unexpected status code {code}")

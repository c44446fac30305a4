"""Wire codec for the station protocol.

Stateless helpers that put protocol values on a :class:`SocketTransport` and
read them back.  Numerics are big-endian:

* int      -> ``>i`` (4 bytes, signed)
* double   -> ``>d`` (8 bytes)
* handle   -> ``>Q`` id when sent; ``>Q`` id + ``>i`` type tag when received
* array    -> int count followed by *count* doubles
* pose     -> 16 doubles, column-major, no count
* matrix2d -> int rows, int cols, rows*cols doubles column-major

Every ``recv_*`` takes an optional ``timeout`` forwarded to the transport.
A read that does not complete in time raises
:class:`~stationlink.common.messaging.utils.StationTimeoutError`.
"""

from __future__ import annotations

import struct
from typing import Any, Optional

import numpy as np

from stationlink.common.matrix import DynamicMatrix
from stationlink.common.types import (
    ItemTarget,
    JointsTarget,
    MoveTarget,
    PoseTarget,
    RemoteHandle,
    as_pose,
)
from stationlink.configs.constants import network

from .transport import SocketTransport
from .utils import ProtocolFault

_INT = struct.Struct(">i")
_HANDLE_ID = struct.Struct(">Q")
_DOUBLE_SIZE = 8


def _pack_doubles(values: np.ndarray) -> bytes:
    return np.asarray(values, dtype=">f8").tobytes()


def _unpack_doubles(raw: bytes) -> np.ndarray:
    return np.frombuffer(raw, dtype=">f8").astype(np.float64)


# ---------------------------------------------------------------------------
# Scalars and text
# ---------------------------------------------------------------------------

def send_int(transport: SocketTransport, value: int) -> None:
    transport.write_bytes(_INT.pack(int(value)))


def recv_int(transport: SocketTransport, timeout: Optional[float] = None) -> int:
    return _INT.unpack(transport.read_bytes(_INT.size, timeout))[0]


def send_line(transport: SocketTransport, text: str) -> None:
    transport.write_line(text)


def recv_line(transport: SocketTransport, timeout: Optional[float] = None) -> str:
    return transport.read_line(timeout)


# ---------------------------------------------------------------------------
# Double arrays
# ---------------------------------------------------------------------------

def send_array(transport: SocketTransport, values: Any) -> None:
    """Send ``[count][doubles]``.  ``None`` is sent as an empty array.

    2-D inputs are flattened column-major, which is how poses travel when
    they are sent "as array".
    """
    if values is None:
        send_int(transport, 0)
        return
    array = np.asarray(values, dtype=np.float64)
    flat = array.reshape(-1, order="F") if array.ndim > 1 else array.reshape(-1)
    transport.write_bytes(_INT.pack(flat.size) + _pack_doubles(flat))


def recv_array(transport: SocketTransport, timeout: Optional[float] = None) -> np.ndarray:
    count = recv_int(transport, timeout)
    if count < 0 or count > network.MAX_ARRAY_LEN:
        raise ProtocolFault(f"Array length {count} outside 0..{network.MAX_ARRAY_LEN}")
    if count == 0:
        return np.zeros(0, dtype=np.float64)
    return _unpack_doubles(transport.read_bytes(count * _DOUBLE_SIZE, timeout))


# ---------------------------------------------------------------------------
# Poses and points
# ---------------------------------------------------------------------------

def send_pose(transport: SocketTransport, pose: Any) -> None:
    transport.write_bytes(_pack_doubles(as_pose(pose).reshape(-1, order="F")))


def recv_pose(transport: SocketTransport, timeout: Optional[float] = None) -> np.ndarray:
    values = _unpack_doubles(transport.read_bytes(16 * _DOUBLE_SIZE, timeout))
    return values.reshape((4, 4), order="F")


def send_xyz(transport: SocketTransport, xyz: Any) -> None:
    values = np.asarray(xyz, dtype=np.float64).reshape(-1)
    if values.size != 3:
        raise ValueError(f"Expected 3 coordinates, got {values.size}")
    transport.write_bytes(_pack_doubles(values))


def recv_xyz(transport: SocketTransport, timeout: Optional[float] = None) -> np.ndarray:
    return _unpack_doubles(transport.read_bytes(3 * _DOUBLE_SIZE, timeout))


# ---------------------------------------------------------------------------
# Remote handles
# ---------------------------------------------------------------------------

def send_item(transport: SocketTransport, handle: Optional[RemoteHandle]) -> None:
    """Send a handle id; ``None`` and invalid handles are sent as 0."""
    handle_id = handle.id if handle is not None else 0
    transport.write_bytes(_HANDLE_ID.pack(handle_id))


def recv_item(transport: SocketTransport, timeout: Optional[float] = None) -> RemoteHandle:
    raw = transport.read_bytes(_HANDLE_ID.size + _INT.size, timeout)
    handle_id = _HANDLE_ID.unpack_from(raw)[0]
    item_type = _INT.unpack_from(raw, _HANDLE_ID.size)[0]
    return RemoteHandle(handle_id, item_type)


# ---------------------------------------------------------------------------
# Matrices
# ---------------------------------------------------------------------------

def send_matrix2d(transport: SocketTransport, matrix: Any) -> None:
    if not isinstance(matrix, DynamicMatrix):
        matrix = DynamicMatrix.from_array(matrix)
    header = _INT.pack(matrix.rows) + _INT.pack(matrix.cols)
    transport.write_bytes(header + _pack_doubles(matrix.data))


def recv_matrix2d(transport: SocketTransport, timeout: Optional[float] = None) -> DynamicMatrix:
    """Receive a matrix whose payload may arrive in arbitrary chunks."""
    rows = recv_int(transport, timeout)
    cols = recv_int(transport, timeout)
    if rows < 0 or cols < 0:
        raise ProtocolFault(f"Invalid matrix dimensions {rows}x{cols}")
    matrix = DynamicMatrix(rows, cols)
    total = rows * cols
    if total == 0:
        return matrix

    data = matrix.data
    count = 0
    leftover = b""
    while count < total:
        wanted = (total - count) * _DOUBLE_SIZE - len(leftover)
        chunk = leftover + transport.read_some(wanted, timeout)
        usable = len(chunk) - len(chunk) % _DOUBLE_SIZE
        if usable:
            values = _unpack_doubles(chunk[:usable])
            data[count:count + values.size] = values
            count += values.size
        leftover = chunk[usable:]
    return matrix


# ---------------------------------------------------------------------------
# Move targets
# ---------------------------------------------------------------------------

def send_move_target(transport: SocketTransport, target: MoveTarget) -> None:
    """Send ``[selector][array][handle]`` for one move target."""
    send_int(transport, target.selector)
    if isinstance(target, JointsTarget):
        send_array(transport, target.joints)
        send_item(transport, None)
    elif isinstance(target, PoseTarget):
        send_array(transport, as_pose(target.pose))
        send_item(transport, None)
    elif isinstance(target, ItemTarget):
        send_array(transport, None)
        send_item(transport, target.handle)
    else:
        raise TypeError(f"Unsupported move target {type(target).__name__}")

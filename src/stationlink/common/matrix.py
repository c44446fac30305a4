"""Growable column-major 2D buffer used for variable sized results."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

_MIN_CAPACITY = 16


class DynamicMatrix:
    """Rows x columns matrix of doubles stored column-major.

    The backing buffer starts empty, jumps to 16 values on first use and
    then doubles whenever more room is needed.  It is never shrunk, so the
    invariant ``rows * cols <= capacity`` holds at all times.
    """

    def __init__(self, rows: int = 0, cols: int = 0):
        self._buffer = np.zeros(0, dtype=np.float64)
        self._rows = 0
        self._cols = 0
        self.resize(rows, cols)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_array(cls, array) -> "DynamicMatrix":
        """Copy a 2-D array (or a 1-D array, taken as one column)."""
        values = np.asarray(array, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        if values.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got {values.ndim} dimensions")
        matrix = cls(*values.shape)
        matrix.data[:] = values.reshape(-1, order="F")
        return matrix

    @classmethod
    def from_columns(cls, columns: Iterable[Sequence[float]]) -> "DynamicMatrix":
        matrix = cls()
        for column in columns:
            matrix.append_column(column)
        return matrix

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def shape(self):
        return self._rows, self._cols

    @property
    def size(self) -> int:
        return self._rows * self._cols

    @property
    def capacity(self) -> int:
        return self._buffer.size

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    @property
    def data(self) -> np.ndarray:
        """Writable column-major view of the ``rows * cols`` values."""
        return self._buffer[:self.size]

    def resize(self, rows: int, cols: int) -> None:
        """Set the shape.  Newly exposed cells are zero, existing ones keep
        their flat (column-major) position."""
        if rows < 0 or cols < 0:
            raise ValueError(f"Matrix dimensions must be non-negative, got {rows}x{cols}")
        old_size = self.size
        self._reserve(rows * cols)
        self._rows, self._cols = rows, cols
        if self.size > old_size:
            self._buffer[old_size:self.size] = 0.0

    def clear(self) -> None:
        """Drop all values; the allocated capacity is kept."""
        self._rows = 0
        self._cols = 0

    def _reserve(self, required: int) -> None:
        capacity = self._buffer.size
        if required <= capacity:
            return
        new_capacity = max(capacity, _MIN_CAPACITY)
        while new_capacity < required:
            new_capacity *= 2
        grown = np.zeros(new_capacity, dtype=np.float64)
        grown[:capacity] = self._buffer
        self._buffer = grown

    # ------------------------------------------------------------------
    # Element and column access
    # ------------------------------------------------------------------

    def _index(self, i: int, j: int) -> int:
        if not (0 <= i < self._rows and 0 <= j < self._cols):
            raise IndexError(f"Index ({i}, {j}) out of range for {self._rows}x{self._cols} matrix")
        return j * self._rows + i

    def get(self, i: int, j: int) -> float:
        return float(self._buffer[self._index(i, j)])

    def set(self, i: int, j: int, value: float) -> None:
        self._buffer[self._index(i, j)] = value

    def __getitem__(self, key):
        i, j = key
        return self.get(i, j)

    def __setitem__(self, key, value):
        i, j = key
        self.set(i, j, value)

    def column(self, j: int) -> np.ndarray:
        """Copy of column *j*."""
        if not 0 <= j < self._cols:
            raise IndexError(f"Column {j} out of range for {self._cols} columns")
        start = j * self._rows
        return self._buffer[start:start + self._rows].copy()

    def columns(self) -> Iterator[np.ndarray]:
        for j in range(self._cols):
            yield self.column(j)

    def append_column(self, values: Sequence[float]) -> None:
        """Append one column.

        An empty matrix adopts the column length as its row count.  Otherwise
        the column is truncated or zero padded to the current row count.
        """
        column = np.asarray(values, dtype=np.float64).reshape(-1)
        if self._rows == 0 and self._cols == 0:
            self._rows = column.size
        start = self.size
        self._reserve(start + self._rows)
        n = min(column.size, self._rows)
        self._buffer[start:start + n] = column[:n]
        self._buffer[start + n:start + self._rows] = 0.0
        self._cols += 1

    def append(self, other: "DynamicMatrix") -> None:
        """Append all columns of *other*; row counts must match."""
        if self._rows == 0 and self._cols == 0:
            self._rows = other.rows
        elif other.rows != self._rows:
            raise ValueError(f"Cannot append a {other.rows}-row matrix to a {self._rows}-row matrix")
        start = self.size
        self._reserve(start + other.size)
        self._buffer[start:start + other.size] = other.data
        self._cols += other.cols

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_numpy(self) -> np.ndarray:
        return self.data.reshape((self._rows, self._cols), order="F").copy()

    def __array__(self, dtype: Optional[np.dtype] = None, copy: Optional[bool] = None):
        array = self.to_numpy()
        return array if dtype is None else array.astype(dtype)

    def __eq__(self, other):
        if not isinstance(other, DynamicMatrix):
            return NotImplemented
        return self.shape == other.shape and np.array_equal(self.data, other.data)

    __hash__ = None

    def __len__(self) -> int:
        return self._cols

    def __repr__(self) -> str:
        return f"DynamicMatrix({self._rows}x{self._cols}, capacity={self.capacity})"

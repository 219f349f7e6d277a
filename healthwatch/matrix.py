"""Strided matrix views over a flat buffer of floats."""

from __future__ import annotations


class Matrix:
    """A rows x cols view into a buffer, elements spaced offset apart from start."""

    def __init__(
        self,
        rows: int = 0,
        cols: int = 0,
        offset: int = 0,
        buffer: list[float] | None = None,
        start: int = 0,
    ) -> None:
        self.rows = rows
        self.cols = cols
        self.offset = offset
        self.buffer = buffer
        self.start = start

    @classmethod
    def zeros(cls, rows: int, cols: int) -> Matrix:
        """A matrix with its own zero-filled, densely packed buffer."""
        return cls(rows, cols, 1, [0.0] * (rows * cols))

    def is_empty(self) -> bool:
        return self.rows == 0 or self.cols == 0 or self.buffer is None

    def _index(self, key) -> int:
        if isinstance(key, tuple):
            row, col = key
            return self.start + (row * self.cols + col) * self.offset
        return self.start + key * self.offset

    def __getitem__(self, key) -> float:
        return self.buffer[self._index(key)]

    def __setitem__(self, key, value: float) -> None:
        self.buffer[self._index(key)] = value

    def at(self, row: int, col: int) -> float:
        return self[row, col]

    def cell_index(self, row: int, col: int | None = None) -> int | None:
        """Buffer index of a cell, or None if it lies outside the matrix.

        With one argument the matrix must be a row or column vector.
        """
        if col is None:
            index = row
            if (self.rows == 1 and 0 <= index < self.cols) or (
                self.cols == 1 and 0 <= index < self.rows
            ):
                return self.start + index * self.offset
            return None
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            return None
        return self._index((row, col))

    def copy_to(self, output: Matrix) -> None:
        for i in range(self.rows):
            for j in range(self.cols):
                output[i, j] = self[i, j]

    def resize(self, rows: int, cols: int) -> None:
        """Change the shape; the buffer is left as it is."""
        self.rows = rows
        self.cols = cols

    def col(self, index: int) -> Matrix:
        """A view of one column."""
        return Matrix(
            self.rows, 1, self.offset * self.cols, self.buffer, self.start + index * self.offset
        )

    def row(self, index: int) -> Matrix:
        """A view of one row."""
        return Matrix(
            1, self.cols, self.offset, self.buffer, self.start + index * self.cols * self.offset
        )

    def __imul__(self, val: float) -> Matrix:
        for i in range(self.rows):
            for j in range(self.cols):
                self[i, j] *= val
        return self

    def __itruediv__(self, val: float) -> Matrix:
        if val == 0:
            raise ZeroDivisionError("matrix division by zero")
        for i in range(self.rows * self.cols):
            self[i] /= val
        return self

    def transpose(self, output: Matrix) -> None:
        """Write the transpose into output, which must have the swapped shape."""
        if self.rows != output.cols or self.cols != output.rows:
            raise ValueError("output shape does not match the transpose")
        for i in range(self.rows):
            for j in range(self.cols):
                output[j, i] = self[i, j]

    def inverse(self, output: Matrix) -> None:
        """Write the inverse of a square matrix of size 1 to 3 into output."""
        if self.rows != self.cols or self.rows == 0:
            raise ValueError("only non-empty square matrices can be inverted")
        if self.rows > 3:
            raise ValueError("inverse is only available up to 3x3")
        a = self.at
        if self.rows == 1:
            if a(0, 0) == 0:
                raise ZeroDivisionError("matrix is singular")
            output[0, 0] = 1 / a(0, 0)
        elif self.rows == 2:
            det = a(0, 0) * a(1, 1) - a(0, 1) * a(1, 0)
            if det == 0:
                raise ZeroDivisionError("matrix is singular")
            output[0, 0] = a(1, 1) / det
            output[0, 1] = -a(0, 1) / det
            output[1, 0] = -a(1, 0) / det
            output[1, 1] = a(0, 0) / det
        else:
            det = (
                a(0, 0) * a(1, 1) * a(2, 2)
                + a(0, 1) * a(1, 2) * a(2, 0)
                + a(1, 0) * a(2, 1) * a(0, 2)
                - a(0, 2) * a(1, 1) * a(2, 0)
                - a(0, 1) * a(1, 0) * a(2, 2)
                - a(0, 0) * a(1, 2) * a(2, 1)
            )
            if det == 0:
                raise ZeroDivisionError("matrix is singular")
            idet = 1.0 / det
            output[0, 0] = (a(1, 1) * a(2, 2) - a(1, 2) * a(2, 1)) * idet
            output[0, 1] = -(a(0, 1) * a(2, 2) - a(0, 2) * a(2, 1)) * idet
            output[0, 2] = (a(0, 1) * a(1, 2) - a(0, 2) * a(1, 1)) * idet
            output[1, 0] = -(a(1, 0) * a(2, 2) - a(1, 2) * a(2, 0)) * idet
            output[1, 1] = (a(0, 0) * a(2, 2) - a(0, 2) * a(2, 0)) * idet
            output[1, 2] = -(a(0, 0) * a(1, 2) - a(0, 2) * a(1, 0)) * idet
            output[2, 0] = (a(1, 0) * a(2, 1) - a(1, 1) * a(2, 0)) * idet
            output[2, 1] = -(a(0, 0) * a(2, 1) - a(0, 1) * a(2, 0)) * idet
            output[2, 2] = (a(0, 0) * a(1, 1) - a(0, 1) * a(1, 0)) * idet

    def tolist(self) -> list[list[float]]:
        return [[self[i, j] for j in range(self.cols)] for i in range(self.rows)]
from __future__ import annotations
from typing import Iterable, List, Union

import numpy as np
from numpy.typing import NDArray

from errors import GridIndexOutOfRange


WIDTH = 80
HEIGHT = 25

Row = Union[bytes, bytearray, str]


class Grid:
    """Fixed-size playfield of byte cells.

    Cells are addressed as (x, y) with x the column and y the row. Every
    access is bounds-checked; only the program counter wraps around.
    """

    def __init__(self, width: int = WIDTH, height: int = HEIGHT) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.cells: NDArray[np.uint8] = np.zeros((height, width), dtype=np.uint8)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _check(self, x: int, y: int) -> None:
        if not self.in_bounds(x, y):
            raise GridIndexOutOfRange(
                f"Grid index ({x}, {y}) out of range for {self.width}x{self.height} grid"
            )

    def get(self, x: int, y: int) -> int:
        self._check(x, y)
        return int(self.cells[y, x])

    def set(self, x: int, y: int, value: int) -> None:
        self._check(x, y)
        # Cells are one byte wide; keep only the low byte.
        self.cells[y, x] = int(value) & 0xFF

    def clear(self) -> None:
        self.cells.fill(0)

    def load_lines(self, lines: Iterable[Row]) -> int:
        """Copy rows into the grid starting at (0, 0).

        Rows past the grid height are ignored and each row is truncated to
        the grid width. Cells not covered by a row keep their value (0 on a
        fresh grid). Returns the number of rows accepted.
        """
        accepted = 0
        for row in lines:
            if accepted >= self.height:
                break
            if isinstance(row, str):
                row = row.encode("latin-1")
            data = np.frombuffer(bytes(row[: self.width]), dtype=np.uint8)
            self.cells[accepted, : len(data)] = data
            accepted += 1
        return accepted

    def row_text(self, y: int) -> str:
        if not 0 <= y < self.height:
            raise GridIndexOutOfRange(f"Grid row {y} out of range for height {self.height}")
        return bytes(self.cells[y]).decode("latin-1")

    def render(self) -> List[str]:
        """Printable rows with trailing NUL/space padding removed."""
        out: List[str] = []
        for y in range(self.height):
            text = self.row_text(y).rstrip("\x00 ")
            out.append("".join(ch if 32 <= ord(ch) < 127 else "." for ch in text))
        while out and not out[-1]:
            out.pop()
        return out

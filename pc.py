from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from grid import HEIGHT, WIDTH


class Direction(Enum):
    RIGHT = (1, 0)
    LEFT = (-1, 0)
    UP = (0, -1)
    DOWN = (0, 1)

    @property
    def delta(self) -> Tuple[int, int]:
        return self.value


@dataclass
class ProgramCounter:
    x: int = 0
    y: int = 0
    dx: int = 1
    dy: int = 0
    width: int = WIDTH
    height: int = HEIGHT

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    @property
    def direction(self) -> Direction:
        return Direction((self.dx, self.dy))

    def set_direction(self, direction: Direction) -> None:
        self.dx, self.dy = direction.delta

    def advance(self) -> None:
        self.x += self.dx
        self.y += self.dy
        # Each axis wraps on its own.
        if self.x < 0:
            self.x = self.width - 1
        elif self.x >= self.width:
            self.x = 0
        if self.y < 0:
            self.y = self.height - 1
        elif self.y >= self.height:
            self.y = 0

    def reset(self) -> None:
        self.x = self.y = 0
        self.set_direction(Direction.RIGHT)

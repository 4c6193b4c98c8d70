from __future__ import annotations
from typing import List


def wrap_i64(value: int) -> int:
    """Wrap any integer into the signed 64-bit range."""
    return ((int(value) + (1 << 63)) & 0xFFFFFFFFFFFFFFFF) - (1 << 63)


class Stack:
    """LIFO of signed 64-bit integers where popping an empty stack yields 0."""

    def __init__(self) -> None:
        self._items: List[int] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, value: int) -> None:
        self._items.append(wrap_i64(value))

    def pop(self) -> int:
        if not self._items:
            return 0
        return self._items.pop()

    def peek(self) -> int:
        return self._items[-1] if self._items else 0

    def dup(self) -> None:
        self._items.append(self.peek())

    def swap(self) -> None:
        a = self.pop()
        b = self.pop()
        self.push(a)
        self.push(b)

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> List[int]:
        # bottom -> top
        return list(self._items)

from __future__ import annotations
from typing import Optional, Tuple


class BefungeError(Exception):
    """Base class for interpreter errors."""


class UsageError(BefungeError):
    """Raised when the command line is malformed."""


class SourceIOError(BefungeError):
    """Raised when a source file cannot be opened or read."""


class ExtensionError(BefungeError):
    pass


class BefungeRuntimeError(BefungeError):
    """Raised for faults while the program is running."""

    def __init__(
        self,
        message: str,
        *,
        instruction: Optional[str] = None,
        position: Optional[Tuple[int, int]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.instruction = instruction
        self.position = position
        self.step_index: Optional[int] = None

    def __str__(self) -> str:
        if self.instruction is None or self.position is None:
            return self.message
        x, y = self.position
        return f"{self.message} (instruction {self.instruction!r} at ({x}, {y}))"


class DivisionByZero(BefungeRuntimeError):
    pass


class ModuloByZero(BefungeRuntimeError):
    pass


class GridIndexOutOfRange(BefungeRuntimeError):
    pass


class HookError(BefungeRuntimeError):
    pass

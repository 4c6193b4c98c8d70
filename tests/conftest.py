from __future__ import annotations
import io
from typing import Callable, List, Optional

import pytest

from grid import Grid
from interpreter import Interpreter
from pc import Direction


class Capture:
    def __init__(self) -> None:
        self.chunks: List[str] = []

    def __call__(self, text: str) -> None:
        self.chunks.append(text)

    @property
    def text(self) -> str:
        return "".join(self.chunks)


@pytest.fixture
def make_interpreter() -> Callable[..., Interpreter]:
    def _make(
        source: str = "",
        *,
        stdin: str = "",
        directions: Optional[List[Direction]] = None,
        grid: Optional[Grid] = None,
        **kwargs,
    ) -> Interpreter:
        sink = Capture()
        direction_source = None
        if directions is not None:
            pending = iter(directions)
            direction_source = lambda: next(pending)
        interp = Interpreter(
            grid=grid,
            source=None if grid is not None else source,
            input_stream=io.StringIO(stdin),
            output_sink=sink,
            direction_source=direction_source,
            **kwargs,
        )
        interp.captured = sink  # type: ignore[attr-defined]
        return interp

    return _make

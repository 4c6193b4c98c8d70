from __future__ import annotations
import os
from typing import List, Optional, Union

from errors import SourceIOError
from grid import Grid


def split_rows(source: Union[bytes, str]) -> List[bytes]:
    """Split program text into grid rows on '\\n'. The delimiter is dropped."""
    if isinstance(source, str):
        source = source.encode("latin-1")
    return source.split(b"\n")


def load_source(source: Union[bytes, str], grid: Optional[Grid] = None) -> Grid:
    grid = grid if grid is not None else Grid()
    grid.load_lines(split_rows(source))
    return grid


def read_source_file(path: str) -> bytes:
    if not os.path.exists(path):
        raise SourceIOError(f"Unable to open source file: {path}")
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise SourceIOError(f"Error reading source file {path}: {exc}") from exc


def load_file(path: str, grid: Optional[Grid] = None) -> Grid:
    return load_source(read_source_file(path), grid)

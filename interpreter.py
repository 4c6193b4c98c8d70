from __future__ import annotations
import json
import random
import re
import sys
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, Callable, Deque, Dict, List, Optional, TextIO, Tuple, Union

from errors import BefungeRuntimeError, DivisionByZero, ModuloByZero
from extensions import HookRegistry, StepContext
from grid import Grid
from loader import load_source
from pc import Direction, ProgramCounter
from stack import Stack


DEFAULT_HISTORY = 64

QUOTE = ord('"')

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")


class HaltReason(Enum):
    HALTED = "halted"
    STEP_LIMIT = "step_limit"


@dataclass
class StepEntry:
    step_index: int
    position: Tuple[int, int]
    instruction: str
    string_mode: bool
    stack_snapshot: Optional[List[int]]


class StepLogger:
    """Keeps the most recent executed steps for tracebacks."""

    def __init__(self, verbose: bool, history: int = DEFAULT_HISTORY) -> None:
        self.verbose = verbose
        self.entries: Deque[StepEntry] = deque(maxlen=max(1, history))
        self.recorded = 0

    def record(
        self,
        *,
        position: Tuple[int, int],
        instruction: str,
        string_mode: bool,
        stack_snapshot: Optional[List[int]] = None,
    ) -> StepEntry:
        entry = StepEntry(
            step_index=self.recorded,
            position=position,
            instruction=instruction,
            string_mode=string_mode,
            stack_snapshot=stack_snapshot,
        )
        self.entries.append(entry)
        self.recorded += 1
        return entry

    @property
    def last(self) -> Optional[StepEntry]:
        return self.entries[-1] if self.entries else None


def parse_int_line(text: str) -> int:
    """Leading optionally signed integer of `text`; 0 when there is none."""
    match = _INT_PREFIX.match(text)
    if match is None:
        return 0
    return int(match.group(1))


def _trunc_div(b: int, a: int) -> int:
    # Rounds toward zero.
    q = abs(b) // abs(a)
    return q if (b < 0) == (a < 0) else -q


def _trunc_mod(b: int, a: int) -> int:
    # Sign follows the dividend.
    return b - a * _trunc_div(b, a)


def random_direction_source(seed: Optional[int] = None) -> Callable[[], Direction]:
    rng = random.Random(seed)
    choices = list(Direction)
    return lambda: rng.choice(choices)


def stdout_sink(text: str) -> None:
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is None:
        sys.stdout.write(text)
    else:
        sys.stdout.flush()
        buffer.write(text.encode("latin-1", errors="replace"))
        buffer.flush()


class Latin1Reader:
    """Byte-exact text view of a binary stream: one input byte per character.

    Pairs with `stdout_sink`, so bytes read by '~' are written back unchanged
    by ','.
    """

    def __init__(self, raw: BinaryIO) -> None:
        self.raw = raw

    def readline(self) -> str:
        return self.raw.readline().decode("latin-1")

    def read(self, size: int = -1) -> str:
        return self.raw.read(size).decode("latin-1")


class Interpreter:
    def __init__(
        self,
        *,
        grid: Optional[Grid] = None,
        source: Optional[str] = None,
        filename: str = "<string>",
        verbose: bool = False,
        max_steps: Optional[int] = None,
        history: int = DEFAULT_HISTORY,
        hooks: Optional[HookRegistry] = None,
        input_stream: Optional[TextIO] = None,
        output_sink: Optional[Callable[[str], None]] = None,
        direction_source: Optional[Callable[[], Direction]] = None,
    ) -> None:
        if grid is None:
            grid = load_source(source) if source is not None else Grid()
        self.grid = grid
        self.stack = Stack()
        self.pc = ProgramCounter(width=grid.width, height=grid.height)
        self.string_mode = False
        self.filename = filename
        self.verbose = verbose
        self.max_steps = max_steps
        self.hooks = hooks if hooks is not None else HookRegistry()
        # Resolved lazily so a replaced sys.stdin is honoured.
        self._input_stream = input_stream
        self.output_sink = output_sink or stdout_sink
        self.direction_source = direction_source or random_direction_source()
        self.logger = StepLogger(verbose=verbose, history=history)
        self.steps = 0
        self.halted = False
        self.halt_reason: Optional[HaltReason] = None

        self._ops: Dict[int, Callable[[], None]] = {}
        self._register("+", self._add)
        self._register("-", self._sub)
        self._register("*", self._mul)
        self._register("/", self._div)
        self._register("%", self._mod)
        self._register("!", self._not)
        self._register("`", self._greater)
        self._register(">", lambda: self.pc.set_direction(Direction.RIGHT))
        self._register("<", lambda: self.pc.set_direction(Direction.LEFT))
        self._register("^", lambda: self.pc.set_direction(Direction.UP))
        self._register("v", lambda: self.pc.set_direction(Direction.DOWN))
        self._register("?", self._random)
        self._register("_", self._horizontal_if)
        self._register("|", self._vertical_if)
        self._register(":", self.stack.dup)
        self._register("\\", self.stack.swap)
        self._register("$", self.stack.pop)
        self._register(".", self._output_int)
        self._register(",", self._output_char)
        self._register("#", self.pc.advance)
        self._register("g", self._get)
        self._register("p", self._put)
        self._register("&", self._input_int)
        self._register("~", self._input_char)
        self._register("@", self._halt)
        for digit in range(10):
            self._register(str(digit), lambda value=digit: self.stack.push(value))

    def _register(self, char: str, impl: Callable[[], Any]) -> None:
        self._ops[ord(char)] = impl

    @property
    def input_stream(self) -> Union[TextIO, "Latin1Reader"]:
        if self._input_stream is not None:
            return self._input_stream
        buffer = getattr(sys.stdin, "buffer", None)
        return Latin1Reader(buffer) if buffer is not None else sys.stdin

    # ---- run loop ----

    def run(self) -> HaltReason:
        self._emit_event("program_start", self)
        try:
            while not self.halted:
                if self.max_steps is not None and self.steps >= self.max_steps:
                    self.halted = True
                    self.halt_reason = HaltReason.STEP_LIMIT
                    break
                self.step()
        except BefungeRuntimeError as error:
            self._emit_event("on_error", self, error)
            raise
        except Exception as exc:
            # Surface Python-level faults as interpreter errors so the CLI can
            # format them like any other runtime error.
            last = self.logger.last
            wrapped = BefungeRuntimeError(
                f"Internal interpreter error: {exc}",
                instruction=last.instruction if last else None,
                position=last.position if last else None,
            )
            wrapped.step_index = last.step_index if last else None
            self._emit_event("on_error", self, wrapped)
            raise wrapped from exc
        assert self.halt_reason is not None
        self._emit_event("program_end", self, self.halt_reason)
        return self.halt_reason

    def step(self) -> bool:
        """Execute the instruction under the PC. Returns False once halted."""
        if self.halted:
            return False
        position = self.pc.position
        code = self.grid.get(*position)
        instruction = chr(code)
        entry = self.logger.record(
            position=position,
            instruction=instruction,
            string_mode=self.string_mode,
            stack_snapshot=self.stack.snapshot() if self.verbose else None,
        )
        try:
            self._emit_event("before_step", self)
            if code == QUOTE:
                self.string_mode = not self.string_mode
            elif self.string_mode:
                self.stack.push(code)
            else:
                op = self._ops.get(code)
                if op is not None:
                    op()
            self.steps += 1
            if self.hooks.has_step_hooks():
                ctx = StepContext(step_index=entry.step_index, instruction=instruction, position=position)
                self.hooks.after_step(self, ctx)
        except BefungeRuntimeError as error:
            # Hook and instruction faults both point at the cell being executed.
            if error.position is None:
                error.instruction = instruction
                error.position = position
            error.step_index = entry.step_index
            raise
        if self.halted:
            return False
        self.pc.advance()
        return True

    def _emit_event(self, event: str, *args: Any) -> None:
        if self.hooks.has_handlers(event):
            self.hooks.emit(event, *args)

    # ---- instructions ----

    def _pop_pair(self) -> Tuple[int, int]:
        a = self.stack.pop()
        b = self.stack.pop()
        return a, b

    def _add(self) -> None:
        a, b = self._pop_pair()
        self.stack.push(a + b)

    def _sub(self) -> None:
        a, b = self._pop_pair()
        self.stack.push(b - a)

    def _mul(self) -> None:
        a, b = self._pop_pair()
        self.stack.push(a * b)

    def _div(self) -> None:
        a, b = self._pop_pair()
        if a == 0:
            raise DivisionByZero("Division by zero")
        self.stack.push(_trunc_div(b, a))

    def _mod(self) -> None:
        a, b = self._pop_pair()
        if a == 0:
            raise ModuloByZero("Modulo by zero")
        self.stack.push(_trunc_mod(b, a))

    def _not(self) -> None:
        self.stack.push(1 if self.stack.pop() == 0 else 0)

    def _greater(self) -> None:
        a, b = self._pop_pair()
        self.stack.push(1 if b > a else 0)

    def _random(self) -> None:
        self.pc.set_direction(self.direction_source())

    def _horizontal_if(self) -> None:
        self.pc.set_direction(Direction.RIGHT if self.stack.pop() == 0 else Direction.LEFT)

    def _vertical_if(self) -> None:
        self.pc.set_direction(Direction.DOWN if self.stack.pop() == 0 else Direction.UP)

    def _output_int(self) -> None:
        self.output_sink(str(self.stack.pop()))

    def _output_char(self) -> None:
        self.output_sink(chr(self.stack.pop() & 0xFF))

    def _get(self) -> None:
        y = self.stack.pop()
        x = self.stack.pop()
        self.stack.push(self.grid.get(x, y))

    def _put(self) -> None:
        y = self.stack.pop()
        x = self.stack.pop()
        value = self.stack.pop()
        self.grid.set(x, y, value)

    def _input_int(self) -> None:
        self.stack.push(parse_int_line(self.input_stream.readline()))

    def _input_char(self) -> None:
        ch = self.input_stream.read(1)
        self.stack.push(ord(ch) if ch else 0)

    def _halt(self) -> None:
        self.halted = True
        self.halt_reason = HaltReason.HALTED


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter) -> None:
        self.interpreter = interpreter

    def format_text(self, error: BefungeRuntimeError, verbose: bool, limit: int = 8) -> str:
        interp = self.interpreter
        lines = [f"Traceback (most recent step last) in \"{interp.filename}\":"]
        recent = list(interp.logger.entries)[-limit:]
        if not recent:
            lines.append("  <no steps executed>")
        for entry in recent:
            x, y = entry.position
            mode = " [string]" if entry.string_mode else ""
            lines.append(f"  step {entry.step_index} at ({x}, {y}): {entry.instruction!r}{mode}")
            if verbose and entry.stack_snapshot is not None:
                lines.append(f"    Stack: {entry.stack_snapshot}")
        if error.position is not None and interp.grid.in_bounds(*error.position):
            x, y = error.position
            lines.append(f"    {interp.grid.row_text(y).rstrip(chr(0))}")
            lines.append("    " + " " * x + "^")
        if verbose:
            lines.append(f"  Stack at failure: {interp.stack.snapshot()}")
        lines.append(f"{error.__class__.__name__}: {error}")
        return "\n".join(lines)

    def to_json(self, error: BefungeRuntimeError) -> str:
        steps: List[Dict[str, Any]] = []
        for entry in self.interpreter.logger.entries:
            item: Dict[str, Any] = {
                "step_index": entry.step_index,
                "position": list(entry.position),
                "instruction": entry.instruction,
                "string_mode": entry.string_mode,
            }
            if entry.stack_snapshot is not None:
                item["stack"] = entry.stack_snapshot
            steps.append(item)
        data = {
            "error": {
                "type": error.__class__.__name__,
                "message": error.message,
                "instruction": error.instruction,
                "position": list(error.position) if error.position is not None else None,
                "failing_step_index": error.step_index,
            },
            "stack": self.interpreter.stack.snapshot(),
            "history": steps,
        }
        return json.dumps(data, indent=2)


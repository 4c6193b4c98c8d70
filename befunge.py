"""Befunge-93 entry point and CLI wiring."""

from __future__ import annotations
import argparse
import sys
from typing import List, NoReturn, Optional

from errors import BefungeRuntimeError, ExtensionError, SourceIOError, UsageError
from extensions import HookRegistry, StepContext, load_extensions
from interpreter import Interpreter, TracebackFormatter, random_direction_source, stdout_sink
from loader import load_file


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="befunge", description="Befunge-93 interpreter")
    parser.add_argument("source", help="Path to the Befunge-93 source file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the '?' instruction")
    parser.add_argument("--max-steps", dest="max_steps", type=int, default=None, help="Stop after this many steps")
    parser.add_argument("--trace", action="store_true", help="Write each executed step to stderr")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Include stack snapshots in tracebacks")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback")
    parser.add_argument("--ext", action="append", default=[], help="Extension module to load (repeatable)")
    return parser


def _install_tracer(hooks: HookRegistry) -> None:
    def _trace(interpreter: Interpreter, ctx: StepContext) -> None:
        x, y = ctx.position
        stack = interpreter.stack.snapshot()[-8:]
        sys.stderr.write(f"({x:02},{y:02}) {ctx.instruction!r} stk={stack}\n")

    hooks.on_event("after_step", _trace, owner="<trace>")


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as error:
        print(f"Incorrect arguments: {error}", file=sys.stderr)
        print(parser.format_usage().rstrip(), file=sys.stderr)
        return 1

    try:
        grid = load_file(args.source)
    except SourceIOError as error:
        print(error, file=sys.stderr)
        return 1

    try:
        hooks = load_extensions(args.ext)
    except ExtensionError as error:
        print(f"ExtensionError: {error}", file=sys.stderr)
        return 1
    if args.trace:
        _install_tracer(hooks)

    interpreter = Interpreter(
        grid=grid,
        filename=args.source,
        verbose=args.verbose,
        max_steps=args.max_steps,
        hooks=hooks,
        direction_source=random_direction_source(args.seed),
    )
    try:
        interpreter.run()
    except BefungeRuntimeError as error:
        formatter = TracebackFormatter(interpreter)
        print(formatter.format_text(error, verbose=args.verbose), file=sys.stderr)
        if args.traceback_json:
            print(formatter.to_json(error), file=sys.stderr)
        return 1
    stdout_sink("\n")
    return 0


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()

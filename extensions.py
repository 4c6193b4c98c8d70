from __future__ import annotations

import importlib.util
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Tuple

from errors import BefungeRuntimeError, ExtensionError, HookError


EXTENSION_API_VERSION = 1

EVENTS = frozenset({"program_start", "before_step", "after_step", "on_error", "program_end"})


@dataclass(frozen=True)
class StepContext:
    step_index: int
    instruction: str
    position: Tuple[int, int]


StepRule = Callable[[Any, StepContext], None]


class HookRegistry:
    """Event handlers and periodic step rules attached to one interpreter."""

    def __init__(self) -> None:
        # event -> [(priority, owner, handler)], highest priority first
        self._handlers: Dict[str, List[Tuple[int, str, Callable[..., None]]]] = {}
        # [(every_n, owner, rule)]
        self._step_rules: List[Tuple[int, str, StepRule]] = []

    def on_event(self, event: str, handler: Callable[..., None], *, priority: int = 0, owner: str = "<host>") -> None:
        if event not in EVENTS:
            raise ExtensionError(f"Unknown event '{event}'")
        handlers = self._handlers.setdefault(event, [])
        handlers.append((priority, owner, handler))
        handlers.sort(key=lambda t: t[0], reverse=True)

    def every_n_steps(self, every_n: int, rule: StepRule, *, owner: str = "<host>") -> None:
        if every_n <= 0:
            raise ExtensionError("every_n_steps must be >= 1")
        self._step_rules.append((every_n, owner, rule))

    def has_handlers(self, event: str) -> bool:
        return bool(self._handlers.get(event))

    def has_step_hooks(self) -> bool:
        return bool(self._step_rules) or self.has_handlers("after_step")

    def emit(self, event: str, *args: Any) -> None:
        for _priority, owner, handler in self._handlers.get(event, []):
            try:
                handler(*args)
            except BefungeRuntimeError:
                raise
            except Exception as exc:
                raise HookError(f"Extension hook '{event}' from {owner} failed: {exc}") from exc

    def after_step(self, interpreter: Any, ctx: StepContext) -> None:
        self.emit("after_step", interpreter, ctx)
        for every_n, owner, rule in self._step_rules:
            if ctx.step_index % every_n != 0:
                continue
            try:
                rule(interpreter, ctx)
            except BefungeRuntimeError:
                raise
            except Exception as exc:
                raise HookError(f"Step rule from {owner} failed: {exc}") from exc


class ExtensionAPI:
    """Passed to an extension's `befunge_register(ext)`."""

    def __init__(self, hooks: HookRegistry, name: str) -> None:
        self._hooks = hooks
        self.name = name

    def on_event(self, event: str, *, priority: int = 0):
        def deco(fn: Callable[..., None]) -> Callable[..., None]:
            self._hooks.on_event(event, fn, priority=priority, owner=self.name)
            return fn
        return deco

    def every_n_steps(self, every_n: int):
        def deco(fn: StepRule) -> StepRule:
            self._hooks.every_n_steps(every_n, fn, owner=self.name)
            return fn
        return deco


def load_extension(path: str, hooks: HookRegistry) -> str:
    """Import the extension at `path` and let it register on `hooks`."""
    if not os.path.isfile(path):
        raise ExtensionError(f"Extension not found: {path}")
    name = os.path.splitext(os.path.basename(path))[0]
    spec = importlib.util.spec_from_file_location(f"befunge_ext_{name}", path)
    if spec is None or spec.loader is None:
        raise ExtensionError(f"Failed to load extension module: {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ExtensionError(f"Extension {path} failed to import: {exc}") from exc

    api_version = getattr(module, "BEFUNGE_EXTENSION_API_VERSION", EXTENSION_API_VERSION)
    if api_version != EXTENSION_API_VERSION:
        raise ExtensionError(
            f"Extension {path} requires API {api_version}, host supports {EXTENSION_API_VERSION}"
        )
    register = getattr(module, "befunge_register", None)
    if not callable(register):
        raise ExtensionError(f"Extension {path} must define callable befunge_register(ext)")
    name = str(getattr(module, "BEFUNGE_EXTENSION_NAME", name))
    register(ExtensionAPI(hooks, name))
    return name


def load_extensions(paths: Sequence[str]) -> HookRegistry:
    hooks = HookRegistry()
    for path in paths:
        load_extension(path, hooks)
    return hooks

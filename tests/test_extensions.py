import textwrap

import pytest

from errors import DivisionByZero, ExtensionError, HookError
from extensions import HookRegistry, load_extension, load_extensions
from interpreter import HaltReason


EXTENSION_SOURCE = textwrap.dedent(
    """
    BEFUNGE_EXTENSION_NAME = "counter"

    def befunge_register(ext):
        @ext.on_event("program_end")
        def _done(interpreter, reason):
            interpreter.output_sink("[" + reason.value + "]")

        @ext.every_n_steps(2)
        def _every_other(interpreter, ctx):
            interpreter.output_sink(str(ctx.step_index))
    """
)


def test_extension_hooks_run(tmp_path, make_interpreter):
    ext = tmp_path / "counter.py"
    ext.write_text(EXTENSION_SOURCE)
    hooks = HookRegistry()
    assert load_extension(str(ext), hooks) == "counter"

    interp = make_interpreter("   @", hooks=hooks)
    assert interp.run() is HaltReason.HALTED
    assert interp.captured.text == "02[halted]"


def test_load_extensions_without_paths():
    hooks = load_extensions([])
    assert not hooks.has_step_hooks()


def test_missing_extension(tmp_path):
    with pytest.raises(ExtensionError, match="Extension not found"):
        load_extensions([str(tmp_path / "absent.py")])


def test_extension_without_register(tmp_path):
    ext = tmp_path / "empty.py"
    ext.write_text("X = 1\n")
    with pytest.raises(ExtensionError, match="befunge_register"):
        load_extensions([str(ext)])


def test_extension_import_failure(tmp_path):
    ext = tmp_path / "broken.py"
    ext.write_text("raise RuntimeError('bad module')\n")
    with pytest.raises(ExtensionError, match="failed to import: bad module"):
        load_extensions([str(ext)])


def test_api_version_mismatch(tmp_path):
    ext = tmp_path / "future.py"
    ext.write_text("BEFUNGE_EXTENSION_API_VERSION = 99\ndef befunge_register(ext):\n    pass\n")
    with pytest.raises(ExtensionError, match="requires API 99"):
        load_extensions([str(ext)])


def test_unknown_event_rejected():
    hooks = HookRegistry()
    with pytest.raises(ExtensionError):
        hooks.on_event("on_tick", lambda *a: None)


def test_every_n_steps_must_be_positive():
    hooks = HookRegistry()
    with pytest.raises(ExtensionError):
        hooks.every_n_steps(0, lambda i, c: None)


def test_handlers_run_by_priority():
    hooks = HookRegistry()
    calls = []
    hooks.on_event("program_start", lambda i: calls.append("low"), priority=0)
    hooks.on_event("program_start", lambda i: calls.append("high"), priority=5)
    hooks.emit("program_start", None)
    assert calls == ["high", "low"]


def test_failing_before_step_hook_carries_location(make_interpreter):
    hooks = HookRegistry()

    def _explode(interpreter):
        if interpreter.pc.position == (2, 0):
            raise ValueError("nope")

    hooks.on_event("before_step", _explode, owner="bad")
    interp = make_interpreter("12+@", hooks=hooks)
    with pytest.raises(HookError, match="'before_step' from bad failed: nope") as info:
        interp.run()
    error = info.value
    assert error.instruction == "+"
    assert error.position == (2, 0)
    assert error.step_index == 2


def test_failing_step_rule_carries_location(make_interpreter):
    hooks = HookRegistry()

    def _explode(interpreter, ctx):
        raise KeyError("rule")

    hooks.every_n_steps(3, _explode, owner="bad")
    interp = make_interpreter("12345@", hooks=hooks)
    with pytest.raises(HookError, match="Step rule from bad failed") as info:
        interp.run()
    # Step 0 is the first to match every third step.
    assert info.value.position == (0, 0)
    assert info.value.step_index == 0


def test_on_error_sees_runtime_error(make_interpreter):
    hooks = HookRegistry()
    seen = []
    hooks.on_event("on_error", lambda i, e: seen.append(type(e).__name__))
    interp = make_interpreter("10/@", hooks=hooks)
    with pytest.raises(DivisionByZero):
        interp.run()
    assert seen == ["DivisionByZero"]

"""End-to-end tests for the snippet engine."""

import time

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from snipbox.core.config import EngineConfig
from snipbox.dialects.resolver import Dialect
from snipbox.dialects.transpilers import CoconutTranspiler, TranspilerHandle
from snipbox.engine import SnippetEngine, run_snippet
from snipbox.formatter import NO_OUTPUT_PLACEHOLDER
from snipbox.types import DependencyUnavailable, Fault, FaultKind, RunRequest, Success


def _run(engine, dialect, source, deadline=None):
    return engine.run(RunRequest(dialect=dialect, source=source, deadline_seconds=deadline))


class TestNativeRuns:
    """Tests for host-native Python snippets."""

    def test_print_hi(self, engine):
        response = _run(engine, "python", "print('hi')")
        assert response.status == "ok"
        assert response.text == "hi"

    def test_empty_source_gives_placeholder(self, engine):
        assert _run(engine, "python", "").text == NO_OUTPUT_PLACEHOLDER

    def test_silent_program_gives_placeholder(self, engine):
        response = _run(engine, "native", "x = sum(range(10))")
        assert response.status == "ok"
        assert response.text == NO_OUTPUT_PLACEHOLDER

    def test_unknown_dialect_runs_as_python(self, engine):
        assert _run(engine, "klingon", "print(6 * 7)").text == "42"

    def test_raised_error_is_a_fault(self, engine):
        response = _run(engine, "python", "raise ValueError('boom')")
        assert response.status == "fault"
        assert "boom" in response.text

    def test_infinite_loop_times_out_and_engine_stays_usable(self, engine):
        started = time.monotonic()
        response = _run(engine, "python", "while True:\n    pass\n")
        elapsed = time.monotonic() - started

        assert response.status == "fault"
        assert "timed out" in response.text
        assert elapsed < 2.0
        assert _run(engine, "python", "print('next')").text == "next"

    @settings(max_examples=25)
    @given(
        st.lists(
            st.text(alphabet="abcdefghijklmnopqrstuvwxyz 0123456789", max_size=12),
            max_size=6,
        )
    )
    def test_output_is_fragments_in_call_order(self, fragments):
        engine = SnippetEngine(EngineConfig(deadline_seconds=1.0))
        source = "\n".join(f"print({fragment!r})" for fragment in fragments)

        expected = "".join(f"{fragment}\n" for fragment in fragments).strip()
        response = _run(engine, "python", source)

        assert response.status == "ok"
        assert response.text == (expected or NO_OUTPUT_PLACEHOLDER)

    def test_repeated_runs_share_no_state(self, engine):
        source = "try:\n    counter += 1\nexcept NameError:\n    counter = 1\nprint(counter)\n"
        assert _run(engine, "python", source).text == "1"
        assert _run(engine, "python", source).text == "1"

    def test_same_request_gives_same_outcome_class(self, engine):
        request = RunRequest(dialect="python", source="raise KeyError('k')")
        first = engine.execute(request)
        second = engine.execute(request)
        assert type(first) is type(second) is Fault

    def test_deadline_override_is_clamped(self, engine_config):
        assert engine_config.clamp_deadline(None) == 0.5
        assert engine_config.clamp_deadline(0) == 0.5
        assert engine_config.clamp_deadline(1.0) == 1.0
        assert engine_config.clamp_deadline(60) == 2.0

    def test_deadline_override_applies(self, engine):
        response = _run(engine, "python", "call_later(0.7, print, 'slow')", deadline=1.5)
        assert response.text == "slow"


class TestForeignRuns:
    """Tests for transpiled dialects."""

    def test_transpiled_source_runs(self, engine, fake_transpiler):
        response = _run(engine, "coconut", "let x = 'bad'\nprint(double(x))")
        assert response.status == "ok"
        assert response.text == "badbad"
        assert fake_transpiler.calls == 1

    def test_missing_transpiler_is_dependency_missing(self, engine_without_transpiler):
        response = _run(engine_without_transpiler, "coconut", "print(1)")
        assert response.status == "dependency-missing"
        assert "coconut" in response.text

    def test_missing_transpiler_is_not_retried(self, engine_without_transpiler):
        _run(engine_without_transpiler, "coconut", "print(1)")
        _run(engine_without_transpiler, "coco", "print(2)")
        handle = engine_without_transpiler.transpilers[Dialect.COCONUT]
        assert handle.attempts == 1

    def test_missing_transpiler_does_not_affect_native(self, engine_without_transpiler):
        _run(engine_without_transpiler, "coconut", "print(1)")
        assert _run(engine_without_transpiler, "python", "print(2)").text == "2"

    def test_unregistered_dialect_handle(self, engine_config):
        engine = SnippetEngine(engine_config, transpilers={})
        outcome = engine.execute(RunRequest(dialect="coconut", source="print(1)"))
        assert isinstance(outcome, DependencyUnavailable)

    def test_runtime_bindings_cannot_reach_host_io(self, engine_config, capsys):
        class LeakyTranspiler:
            dialect = Dialect.COCONUT
            package = "coconut"

            def transpile(self, source):
                return source

            def runtime_bindings(self):
                return {"open": open, "py_open": open, "py_print": print, "double": lambda v: v * 2}

        handles = {Dialect.COCONUT: TranspilerHandle(Dialect.COCONUT, "coconut", LeakyTranspiler)}
        engine = SnippetEngine(engine_config, transpilers=handles)

        for call in ("open('snippet.txt', 'w')", "py_open('snippet.txt', 'w')", "py_print('escaped')"):
            response = _run(engine, "coconut", call)
            assert response.status == "fault"
            assert "NameError" in response.text
        assert "escaped" not in capsys.readouterr().out
        assert _run(engine, "coconut", "print(double(3))").text == "6"

    def test_runtime_bindings_only_for_foreign_dialects(self, engine):
        response = _run(engine, "python", "print(double(2))")
        assert response.status == "fault"
        assert "NameError" in response.text


class TestCoconut:
    """Tests against the real Coconut transpiler, when installed."""

    @pytest.fixture(scope="class")
    def coconut_engine(self):
        pytest.importorskip("coconut")
        handles = {Dialect.COCONUT: TranspilerHandle(Dialect.COCONUT, "coconut", CoconutTranspiler)}
        # Generous deadline: the first Coconut compile is slow, but it is not charged.
        return SnippetEngine(EngineConfig(deadline_seconds=2.0), transpilers=handles)

    def test_type_annotations_are_not_checked(self, coconut_engine):
        response = _run(coconut_engine, "coconut", "x: int = 'bad'\nprint(x)\n")
        assert response.status == "ok"
        assert response.text == "bad"

    def test_pipeline_syntax(self, coconut_engine):
        response = _run(coconut_engine, "coconut", "range(3) |> list |> print\n")
        assert response.text == "[0, 1, 2]"

    @pytest.mark.parametrize(
        "source",
        ["print(open('/etc/hostname').read())\n", "py_open('snippet.txt', 'w')\n", "py_print('escaped')\n"],
    )
    def test_runtime_helpers_do_not_expose_host_io(self, coconut_engine, source, capsys):
        response = _run(coconut_engine, "coconut", source)
        assert response.status == "fault"
        assert "NameError" in response.text
        assert "escaped" not in capsys.readouterr().out

    def test_invalid_source_is_a_transpile_fault(self, coconut_engine):
        outcome = coconut_engine.execute(RunRequest(dialect="coconut", source="def broken(:\n"))
        assert isinstance(outcome, Fault)
        assert outcome.kind is FaultKind.TRANSPILE
        assert outcome.diagnostic


def test_run_snippet_uses_default_engine():
    response = run_snippet("python", "print('default')")
    assert response.status == "ok"
    assert response.text == "default"


def test_execute_returns_success_outcome(engine):
    assert engine.execute(RunRequest(dialect="python", source="print(1)")) == Success("1\n")

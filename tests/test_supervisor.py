"""Tests for deadline-bounded execution."""

import threading
import time

import pytest

from snipbox.core.exceptions import TranspileError
from snipbox.sandbox.context import SandboxContextBuilder
from snipbox.sandbox.supervisor import ExecutionSupervisor, _WorkerResult
from snipbox.types import Fault, FaultKind, Success


@pytest.fixture
def builder():
    return SandboxContextBuilder()


@pytest.fixture
def supervisor():
    return ExecutionSupervisor(deadline_seconds=0.3)


def test_success_returns_captured_output(supervisor, builder):
    outcome = supervisor.execute("print('hi')", builder.build())
    assert outcome == Success("hi\n")


def test_empty_source_succeeds_with_empty_text(supervisor, builder):
    assert supervisor.execute("", builder.build()) == Success("")


def test_runtime_fault_carries_traceback(supervisor, builder):
    code = "def explode():\n    raise ValueError('boom')\n\nexplode()\n"
    outcome = supervisor.execute(code, builder.build())

    assert isinstance(outcome, Fault)
    assert outcome.kind is FaultKind.EVALUATION
    assert outcome.diagnostic.startswith("Traceback")
    assert "ValueError: boom" in outcome.diagnostic
    assert "line 2, in explode" in outcome.diagnostic
    assert "raise ValueError('boom')" in outcome.diagnostic
    assert "supervisor.py" not in outcome.diagnostic


def test_host_frames_after_the_snippet_are_trimmed(supervisor, builder):
    outcome = supervisor.execute("x = 1\nimport os\n", builder.build())

    assert isinstance(outcome, Fault)
    assert "ImportError: import of 'os' is not allowed" in outcome.diagnostic
    assert "line 2, in <module>" in outcome.diagnostic
    assert "guarded_import" not in outcome.diagnostic
    assert "context.py" not in outcome.diagnostic


def test_syntax_error_is_a_fault(supervisor, builder):
    outcome = supervisor.execute("print(", builder.build())

    assert isinstance(outcome, Fault)
    assert "SyntaxError" in outcome.diagnostic
    assert "supervisor.py" not in outcome.diagnostic


def test_infinite_loop_times_out_near_deadline(supervisor, builder):
    started = time.monotonic()
    outcome = supervisor.execute("while True:\n    pass\n", builder.build())
    elapsed = time.monotonic() - started

    assert isinstance(outcome, Fault)
    assert outcome.kind is FaultKind.TIMEOUT
    assert "timed out after 300ms" in outcome.diagnostic
    assert 0.25 <= elapsed < 1.5


def test_snippet_cannot_swallow_the_deadline(supervisor, builder):
    code = "while True:\n    try:\n        pass\n    except Exception:\n        pass\n"
    outcome = supervisor.execute(code, builder.build())

    assert isinstance(outcome, Fault)
    assert outcome.kind is FaultKind.TIMEOUT


def test_supervisor_recovers_after_timeout(supervisor, builder):
    supervisor.execute("while True: pass", builder.build())
    assert supervisor.execute("print('still here')", builder.build()) == Success("still here\n")


def test_timer_output_follows_body_output(supervisor, builder):
    code = "call_later(0.01, print, 'later')\nprint('now')\n"
    assert supervisor.execute(code, builder.build()) == Success("now\nlater\n")


def test_fault_in_timer_callback(supervisor, builder):
    code = "def cb():\n    1 / 0\ncall_later(0, cb)\n"
    outcome = supervisor.execute(code, builder.build())

    assert isinstance(outcome, Fault)
    assert "ZeroDivisionError" in outcome.diagnostic


def test_pending_timer_past_deadline_times_out(supervisor, builder):
    outcome = supervisor.execute("call_later(60, print, 'never')", builder.build())

    assert isinstance(outcome, Fault)
    assert outcome.kind is FaultKind.TIMEOUT


def test_context_is_closed_after_every_run(supervisor, builder):
    ok = builder.build()
    supervisor.execute("print(1)", ok)
    failed = builder.build()
    supervisor.execute("raise RuntimeError('x')", failed)

    assert ok.closed and failed.closed


def test_prepare_runs_before_evaluation(supervisor, builder):
    outcome = supervisor.execute("PRINT('x')", builder.build(), prepare=lambda s: s.lower())
    assert outcome == Success("x\n")


def test_transpile_error_becomes_transpile_fault(supervisor, builder):
    def prepare(source):
        raise TranspileError("coconut", "unexpected ':'", lineno=1)

    outcome = supervisor.execute("def f(:", builder.build(), prepare=prepare)

    assert isinstance(outcome, Fault)
    assert outcome.kind is FaultKind.TRANSPILE
    assert "line 1" in outcome.diagnostic


def test_unexpected_prepare_error_is_caught(supervisor, builder):
    def prepare(source):
        raise KeyError("grammar")

    outcome = supervisor.execute("x", builder.build(), prepare=prepare)

    assert isinstance(outcome, Fault)
    assert outcome.kind is FaultKind.TRANSPILE
    assert "KeyError" in outcome.diagnostic


def test_deadline_must_be_positive():
    with pytest.raises(ValueError):
        ExecutionSupervisor(deadline_seconds=0)


def test_finished_worker_is_never_interrupted(supervisor):
    release = threading.Event()
    finished = []

    def linger():
        try:
            while not release.is_set():
                time.sleep(0.005)
            finished.append("clean")
        except BaseException as exc:  # noqa: B036
            finished.append(type(exc).__name__)

    worker = threading.Thread(target=linger, daemon=True)
    worker.start()
    supervisor._abandon(worker, _WorkerResult(done=True))
    release.set()
    worker.join(1.0)

    assert finished == ["clean"]

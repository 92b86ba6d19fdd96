"""
Deadline-bounded execution of Python source inside a sandbox context.

The supervisor is the only place where snippet exceptions are caught. Every
failure, including transpile errors and deadline overruns, comes back as a
:class:`~snipbox.types.Fault`; nothing propagates to the caller.

Evaluation runs on a daemon worker thread. When the deadline passes the
supervisor injects :class:`SnippetDeadlineExceeded` into the worker with
``PyThreadState_SetAsyncExc`` and returns a timeout fault straight away. A
worker stuck inside a C call cannot be interrupted; it is abandoned and dies
with its daemon thread.
"""

from __future__ import annotations

import ctypes
import itertools
import linecache
import threading
import time
import traceback
from dataclasses import dataclass
from typing import Callable

from ..core.exceptions import ExecutionTimeoutError, SnippetDeadlineExceeded, TranspileError
from ..core.logging import get_logger
from ..types import Fault, FaultKind, RunOutcome, RunState, Success
from .context import SandboxContext

logger = get_logger(__name__)

try:
    _PY_SET_ASYNC_EXC = ctypes.pythonapi.PyThreadState_SetAsyncExc
except AttributeError:
    _PY_SET_ASYNC_EXC = None
else:
    _PY_SET_ASYNC_EXC.argtypes = [ctypes.c_ulong, ctypes.py_object]
    _PY_SET_ASYNC_EXC.restype = ctypes.c_int

_run_ids = itertools.count(1)

# How long to keep re-raising into a worker that swallowed the deadline.
_ABANDON_GRACE_SECONDS = 0.25


def snippet_filename(run_id: int) -> str:
    return f"<snippet-{run_id}>"


@dataclass(slots=True)
class _WorkerResult:
    error: BaseException | None = None
    done: bool = False


class ExecutionSupervisor:
    """Runs Python source in a sandbox context under a wall-clock deadline."""

    def __init__(self, deadline_seconds: float = 1.5):
        if deadline_seconds <= 0:
            raise ValueError("deadline_seconds must be positive")
        self.deadline_seconds = deadline_seconds

    def execute(
        self,
        source: str,
        context: SandboxContext,
        prepare: Callable[[str], str] | None = None,
    ) -> RunOutcome:
        """
        Execute ``source`` in ``context`` and return the outcome.

        Args:
            source: Snippet source text
            context: Fresh context owned by this run; always closed on return
            prepare: Optional transpile step applied to ``source`` first.
                It runs on the calling thread and is not charged against
                the deadline.

        Returns:
            Success with the captured output, or a Fault
        """
        run_id = next(_run_ids)
        filename = snippet_filename(run_id)
        state = RunState.PENDING
        started = time.monotonic()

        try:
            if prepare is not None:
                state = RunState.TRANSPILING
                source = prepare(source)

            state = RunState.EVALUATING
            outcome = self._evaluate(source, context, filename)
            state = _terminal_state(outcome)
            return outcome
        except TranspileError as exc:
            state = RunState.FAULTED
            return Fault(str(exc), FaultKind.TRANSPILE)
        except Exception as exc:
            kind = FaultKind.TRANSPILE if state is RunState.TRANSPILING else FaultKind.EVALUATION
            state = RunState.FAULTED
            return Fault(format_fault(exc), kind)
        finally:
            context.close()
            linecache.cache.pop(filename, None)
            logger.debug(
                f"Run {run_id} finished: state={state.value}, "
                f"elapsed={time.monotonic() - started:.3f}s"
            )

    def _evaluate(self, source: str, context: SandboxContext, filename: str) -> RunOutcome:
        _register_source(filename, source)
        try:
            code = compile(source, filename, "exec")
        except SyntaxError as exc:
            return Fault(format_fault(exc, filename), FaultKind.EVALUATION)

        deadline = time.monotonic() + self.deadline_seconds
        result = _WorkerResult()

        def work() -> None:
            try:
                exec(code, context.namespace)
                context.timers.drain(deadline)
            except BaseException as exc:  # noqa: B036 - forwarded to the supervisor
                result.error = exc
            finally:
                result.done = True

        worker = threading.Thread(target=work, name=f"snipbox-{filename.strip('<>')}", daemon=True)
        worker.start()
        worker.join(max(deadline - time.monotonic(), 0.0))

        if worker.is_alive():
            self._abandon(worker, result)
            return self._timeout_fault()

        if isinstance(result.error, SnippetDeadlineExceeded):
            return self._timeout_fault()
        if result.error is not None:
            return Fault(format_fault(result.error, filename), FaultKind.EVALUATION)
        return Success(context.buffer.getvalue())

    def _timeout_fault(self) -> Fault:
        error = ExecutionTimeoutError(self.deadline_seconds)
        return Fault(f"{type(error).__name__}: {error}", FaultKind.TIMEOUT)

    def _abandon(self, worker: threading.Thread, result: _WorkerResult) -> None:
        """Interrupt the worker; give up on it if it will not stop."""
        stop_at = time.monotonic() + _ABANDON_GRACE_SECONDS
        while worker.is_alive() and time.monotonic() < stop_at:
            # A finished worker may have released its ident to another thread.
            if result.done:
                break
            if not _raise_in_thread(worker, SnippetDeadlineExceeded):
                break
            worker.join(0.02)
        if worker.is_alive() and not result.done:
            logger.warning(f"Worker {worker.name} did not stop after its deadline; abandoning it")


def _raise_in_thread(worker: threading.Thread, exc_type: type[BaseException]) -> bool:
    thread_id = worker.ident
    if thread_id is None or _PY_SET_ASYNC_EXC is None:
        return False
    affected = _PY_SET_ASYNC_EXC(ctypes.c_ulong(thread_id), ctypes.py_object(exc_type))
    if affected > 1:
        _PY_SET_ASYNC_EXC(ctypes.c_ulong(thread_id), None)
        raise RuntimeError("PyThreadState_SetAsyncExc affected multiple threads")
    return affected == 1


def _register_source(filename: str, source: str) -> None:
    """Make snippet lines visible to ``traceback`` formatting."""
    lines = source.splitlines(keepends=True)
    linecache.cache[filename] = (len(source), None, lines, filename)


def _terminal_state(outcome: RunOutcome) -> RunState:
    if isinstance(outcome, Fault):
        return RunState.TIMED_OUT if outcome.kind is FaultKind.TIMEOUT else RunState.FAULTED
    return RunState.COMPLETED


def format_fault(exc: BaseException, filename: str | None = None) -> str:
    """
    Render ``exc`` with its traceback.

    When ``filename`` is given, only frames from the first to the last snippet
    frame are kept; host frames on either side (the supervisor, the import
    guard) are dropped.
    """
    report = traceback.TracebackException(type(exc), exc, exc.__traceback__)
    if filename is not None:
        frames = list(report.stack)
        positions = [i for i, frame in enumerate(frames) if frame.filename == filename]
        kept = frames[positions[0] : positions[-1] + 1] if positions else []
        report.stack = traceback.StackSummary.from_list(kept)
    text = "".join(report.format()).rstrip()
    return text or f"{type(exc).__name__}: {exc}"

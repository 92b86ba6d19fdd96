"""
Snippet engine: resolve the dialect, transpile if needed, run, format.
"""

from __future__ import annotations

import threading

from .core.config import EngineConfig
from .core.logging import get_logger
from .dialects.resolver import Dialect, RequiresTranspile, resolve_dialect
from .dialects.transpilers import TranspilerHandle, Unavailable, transpiler_handles
from .formatter import to_response
from .sandbox.context import SandboxContextBuilder
from .sandbox.supervisor import ExecutionSupervisor
from .types import DependencyUnavailable, RunOutcome, RunRequest, RunResponse

logger = get_logger(__name__)


class SnippetEngine:
    """Runs one snippet per call; no state is shared between runs."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        transpilers: dict[Dialect, TranspilerHandle] | None = None,
        builder: SandboxContextBuilder | None = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (deadline, output cap, imports)
            transpilers: Transpiler handles by dialect; defaults to the
                process-wide handles
            builder: Sandbox context builder; defaults to one built from
                ``config``
        """
        self.config = config or EngineConfig()
        self.config.validate()
        self.transpilers = transpiler_handles() if transpilers is None else transpilers
        self.builder = builder or SandboxContextBuilder(
            allowed_modules=self.config.allowed_modules,
            max_output_chars=self.config.max_output_chars,
        )

    def execute(self, request: RunRequest) -> RunOutcome:
        """Run ``request`` and return its outcome."""
        resolution = resolve_dialect(request.dialect)
        prepare = None
        runtime_bindings = None

        if isinstance(resolution, RequiresTranspile):
            dialect = resolution.dialect.value
            handle = self.transpilers.get(resolution.dialect)
            if handle is None:
                return DependencyUnavailable(f"No transpiler registered for '{dialect}'", dialect)
            acquired = handle.ensure()
            if isinstance(acquired, Unavailable):
                return DependencyUnavailable(acquired.message, dialect)
            prepare = acquired.transpiler.transpile
            runtime_bindings = acquired.transpiler.runtime_bindings()

        deadline = self.config.clamp_deadline(request.deadline_seconds)
        logger.debug(
            f"Running {len(request.source)} chars as {request.dialect or 'python'} "
            f"(deadline={deadline:g}s)"
        )
        context = self.builder.build(runtime_bindings)
        return ExecutionSupervisor(deadline).execute(request.source, context, prepare=prepare)

    def run(self, request: RunRequest) -> RunResponse:
        """Run ``request`` and collapse the outcome to status and text."""
        return to_response(self.execute(request))


_default_engine: SnippetEngine | None = None
_default_lock = threading.Lock()


def get_default_engine() -> SnippetEngine:
    global _default_engine
    with _default_lock:
        if _default_engine is None:
            _default_engine = SnippetEngine()
        return _default_engine


def run_snippet(dialect: str, source: str, deadline_seconds: float | None = None) -> RunResponse:
    """Run one snippet with the default engine."""
    request = RunRequest(dialect=dialect, source=source, deadline_seconds=deadline_seconds)
    return get_default_engine().run(request)

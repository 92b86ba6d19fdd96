"""
snipbox: run short code snippets in an in-process, deadline-bounded sandbox.
"""

from .engine import SnippetEngine, run_snippet
from .formatter import NO_OUTPUT_PLACEHOLDER, format_outcome, to_response
from .types import (
    DependencyUnavailable,
    Fault,
    FaultKind,
    RunOutcome,
    RunRequest,
    RunResponse,
    Success,
)

__version__ = "0.1.0"

__all__ = [
    "NO_OUTPUT_PLACEHOLDER",
    "DependencyUnavailable",
    "Fault",
    "FaultKind",
    "RunOutcome",
    "RunRequest",
    "RunResponse",
    "SnippetEngine",
    "Success",
    "format_outcome",
    "run_snippet",
    "to_response",
]

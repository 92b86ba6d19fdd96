"""
Request and outcome types shared by the engine layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union


@dataclass(frozen=True, slots=True)
class RunRequest:
    """One snippet submission. Source text is never persisted."""

    dialect: str
    source: str
    deadline_seconds: float | None = None


class FaultKind(str, Enum):
    """Where a faulted run failed."""

    TRANSPILE = "transpile"
    EVALUATION = "evaluation"
    TIMEOUT = "timeout"


class RunState(str, Enum):
    """Lifecycle of a single run."""

    PENDING = "pending"
    TRANSPILING = "transpiling"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    FAULTED = "faulted"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class Success:
    """Run completed; ``text`` is the raw captured output."""

    text: str


@dataclass(frozen=True, slots=True)
class Fault:
    """Run failed; ``diagnostic`` is the full error text."""

    diagnostic: str
    kind: FaultKind = FaultKind.EVALUATION


@dataclass(frozen=True, slots=True)
class DependencyUnavailable:
    """The transpiler for the requested dialect is not installed."""

    message: str
    dialect: str


RunOutcome = Union[Success, Fault, DependencyUnavailable]

ResponseStatus = Literal["ok", "dependency-missing", "fault"]


@dataclass(frozen=True, slots=True)
class RunResponse:
    """Outcome collapsed for the HTTP and CLI surfaces."""

    status: ResponseStatus
    text: str

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "text": self.text}

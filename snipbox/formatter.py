"""
Turns run outcomes into the text handed back to callers.
"""

from .types import DependencyUnavailable, Fault, RunOutcome, RunResponse, Success

NO_OUTPUT_PLACEHOLDER = "(no output)"


def format_outcome(outcome: RunOutcome) -> str:
    """Return the caller-facing text for ``outcome``. Never raises."""
    if isinstance(outcome, Success):
        text = (outcome.text or "").strip()
        return text if text else NO_OUTPUT_PLACEHOLDER
    if isinstance(outcome, Fault):
        return outcome.diagnostic or "Unknown error"
    if isinstance(outcome, DependencyUnavailable):
        return outcome.message or f"Transpiler for '{outcome.dialect}' is not available"
    return str(outcome)


def to_response(outcome: RunOutcome) -> RunResponse:
    """Collapse ``outcome`` into a status/text pair."""
    if isinstance(outcome, Success):
        status = "ok"
    elif isinstance(outcome, DependencyUnavailable):
        status = "dependency-missing"
    else:
        status = "fault"
    return RunResponse(status=status, text=format_outcome(outcome))

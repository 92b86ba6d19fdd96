"""
Sandbox contexts and deadline-bounded execution.
"""

from .context import (
    CAPTURE_BINDINGS,
    SAFE_BUILTINS,
    TIMER_BINDINGS,
    CaptureBuffer,
    SandboxContext,
    SandboxContextBuilder,
)
from .supervisor import ExecutionSupervisor, format_fault
from .timers import TimerQueue

__all__ = [
    "CAPTURE_BINDINGS",
    "SAFE_BUILTINS",
    "TIMER_BINDINGS",
    "CaptureBuffer",
    "ExecutionSupervisor",
    "SandboxContext",
    "SandboxContextBuilder",
    "TimerQueue",
    "format_fault",
]

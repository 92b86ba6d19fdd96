"""
Dialect resolution and transpilation.
"""

from .resolver import (
    FOREIGN_DIALECTS,
    Dialect,
    Native,
    RequiresTranspile,
    dialect_for_suffix,
    resolve_dialect,
    supported_dialects,
)
from .transpilers import (
    CoconutTranspiler,
    HandleState,
    Ready,
    Transpiler,
    TranspilerHandle,
    TranspilerHealth,
    Unavailable,
    detect_transpiler_health,
    get_transpiler_handle,
    transpiler_handles,
)

__all__ = [
    "FOREIGN_DIALECTS",
    "CoconutTranspiler",
    "Dialect",
    "HandleState",
    "Native",
    "Ready",
    "RequiresTranspile",
    "Transpiler",
    "TranspilerHandle",
    "TranspilerHealth",
    "Unavailable",
    "detect_transpiler_health",
    "dialect_for_suffix",
    "get_transpiler_handle",
    "resolve_dialect",
    "supported_dialects",
    "transpiler_handles",
]

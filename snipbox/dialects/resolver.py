"""
Maps dialect tags to either native Python or a transpile step.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Dialect(str, Enum):
    """Canonical dialects understood by the engine."""

    PYTHON = "python"
    COCONUT = "coconut"


# Alias -> canonical dialect. Anything not listed runs as Python.
_ALIASES: dict[str, Dialect] = {
    "": Dialect.PYTHON,
    "python": Dialect.PYTHON,
    "py": Dialect.PYTHON,
    "native": Dialect.PYTHON,
    "coconut": Dialect.COCONUT,
    "coco": Dialect.COCONUT,
}

FOREIGN_DIALECTS = frozenset({Dialect.COCONUT})

# File suffix -> dialect, for the CLI.
SUFFIXES: dict[str, Dialect] = {
    ".py": Dialect.PYTHON,
    ".coco": Dialect.COCONUT,
}


@dataclass(frozen=True, slots=True)
class Native:
    """Source is already Python."""


@dataclass(frozen=True, slots=True)
class RequiresTranspile:
    """Source must be transpiled from ``dialect`` first."""

    dialect: Dialect


DialectResolution = Native | RequiresTranspile


def normalize_dialect(tag: str | None) -> str:
    return (tag or "").strip().lower()


def resolve_dialect(tag: str | None) -> DialectResolution:
    """
    Resolve a requested dialect tag.

    Unknown tags are not rejected; they resolve to :class:`Native` and the
    source is run as Python.
    """
    dialect = _ALIASES.get(normalize_dialect(tag), Dialect.PYTHON)
    if dialect in FOREIGN_DIALECTS:
        return RequiresTranspile(dialect)
    return Native()


def dialect_for_suffix(suffix: str) -> Dialect:
    return SUFFIXES.get(suffix.lower(), Dialect.PYTHON)


def supported_dialects() -> list[str]:
    return [dialect.value for dialect in Dialect]

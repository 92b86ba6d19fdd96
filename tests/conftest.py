"""
Pytest configuration and fixtures for snipbox tests.
"""

import os
import threading

import pytest
from hypothesis import Verbosity, settings

from snipbox.core.config import EngineConfig
from snipbox.dialects.resolver import Dialect
from snipbox.dialects.transpilers import TranspilerHandle
from snipbox.engine import SnippetEngine

# Configure hypothesis settings for property-based testing
settings.register_profile(
    "default",
    max_examples=50,
    verbosity=Verbosity.normal,
    deadline=None,  # Each example runs a snippet on a worker thread
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class FakeTranspiler:
    """Strips a leading ``let `` from each line; counts calls."""

    dialect = Dialect.COCONUT
    package = "coconut"

    def __init__(self):
        self.calls = 0
        self._lock = threading.Lock()

    def transpile(self, source: str) -> str:
        with self._lock:
            self.calls += 1
        return "\n".join(
            line[4:] if line.startswith("let ") else line for line in source.splitlines()
        )

    def runtime_bindings(self) -> dict:
        return {"double": lambda value: value * 2}


def _missing_coconut():
    raise ImportError("No module named 'coconut'")


@pytest.fixture
def fake_transpiler():
    return FakeTranspiler()


@pytest.fixture
def available_handles(fake_transpiler):
    return {Dialect.COCONUT: TranspilerHandle(Dialect.COCONUT, "coconut", lambda: fake_transpiler)}


@pytest.fixture
def missing_handles():
    return {Dialect.COCONUT: TranspilerHandle(Dialect.COCONUT, "coconut", _missing_coconut)}


@pytest.fixture
def engine_config():
    return EngineConfig(deadline_seconds=0.5, max_deadline_seconds=2.0)


@pytest.fixture
def engine(engine_config, available_handles):
    return SnippetEngine(engine_config, transpilers=available_handles)


@pytest.fixture
def engine_without_transpiler(engine_config, missing_handles):
    return SnippetEngine(engine_config, transpilers=missing_handles)

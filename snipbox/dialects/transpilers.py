"""
Transpiler adapters and the process-wide transpiler cache.

Each foreign dialect owns one :class:`TranspilerHandle`. The first request
for the dialect imports the transpiler; the result, success or failure, is
kept for the life of the process.
"""

from __future__ import annotations

import contextlib
import importlib.util
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Protocol

from ..core.exceptions import TranspileError, TranspilerUnavailableError
from ..core.logging import get_logger
from .resolver import FOREIGN_DIALECTS, Dialect

logger = get_logger(__name__)


class Transpiler(Protocol):
    """Contract for foreign-dialect transpilers."""

    dialect: Dialect
    package: str

    def transpile(self, source: str) -> str:
        """Return Python source equivalent to ``source``."""

    def runtime_bindings(self) -> dict[str, Any]:
        """Names the transpiled code expects to find at run time."""


@contextlib.contextmanager
def _forward_warnings(compiler_logger: Any, dialect: Dialect) -> Iterator[None]:
    """Send compiler warnings to our log instead of the host's stderr."""

    def warn_err(warning: BaseException, force: bool = False) -> None:
        logger.info(f"{dialect.value} compiler warning: {warning}")

    compiler_logger.warn_err = warn_err
    try:
        yield
    finally:
        del compiler_logger.warn_err


class CoconutTranspiler:
    """Compiles Coconut source to plain Python with a fixed configuration."""

    dialect = Dialect.COCONUT
    package = "coconut"

    # Current interpreter, no line-number or source comments.
    SETUP = {
        "target": "sys",
        "line_numbers": False,
        "keep_lines": False,
    }
    # "block" compiles without the runtime header; runtime_bindings() fills it in.
    PARSE_MODE = "block"

    def __init__(self) -> None:
        import coconut.__coconut__ as runtime
        from coconut import api
        from coconut.exceptions import CoconutException
        from coconut.terminal import logger as compiler_logger

        api.setup(**self.SETUP)
        self._api = api
        self._exception_type = CoconutException
        self._compiler_logger = compiler_logger
        self._bindings = {
            name: value for name, value in vars(runtime).items() if not name.startswith("__")
        }
        # The Coconut compiler keeps global parser state.
        self._lock = threading.Lock()

    def transpile(self, source: str) -> str:
        with self._lock, _forward_warnings(self._compiler_logger, self.dialect):
            try:
                return self._api.parse(source, mode=self.PARSE_MODE)
            except self._exception_type as exc:
                raise TranspileError(
                    self.dialect.value, str(exc), lineno=getattr(exc, "ln", None)
                ) from exc

    def runtime_bindings(self) -> dict[str, Any]:
        return dict(self._bindings)


class HandleState(str, Enum):
    ABSENT = "absent"
    AVAILABLE = "available"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Ready:
    transpiler: Transpiler


@dataclass(frozen=True, slots=True)
class Unavailable:
    message: str


class TranspilerHandle:
    """
    Single-assignment, lock-guarded acquisition of one transpiler.

    ``ensure()`` runs the loader at most once. Concurrent first callers
    block on the lock and all observe the same result.
    """

    def __init__(self, dialect: Dialect, package: str, loader: Callable[[], Transpiler]):
        self.dialect = dialect
        self.package = package
        self._loader = loader
        self._lock = threading.Lock()
        self._result: Ready | Unavailable | None = None
        self.attempts = 0

    @property
    def state(self) -> HandleState:
        result = self._result
        if result is None:
            return HandleState.ABSENT
        if isinstance(result, Ready):
            return HandleState.AVAILABLE
        return HandleState.FAILED

    def ensure(self) -> Ready | Unavailable:
        result = self._result
        if result is not None:
            return result
        with self._lock:
            if self._result is None:
                self._result = self._acquire()
            return self._result

    def _acquire(self) -> Ready | Unavailable:
        self.attempts += 1
        try:
            transpiler = self._loader()
        except ImportError as exc:
            error = TranspilerUnavailableError(self.dialect.value, self.package, detail=str(exc))
            logger.warning(f"Transpiler for {self.dialect.value} unavailable: {exc}")
            return Unavailable(str(error))
        except Exception as exc:
            logger.error(f"Transpiler for {self.dialect.value} failed to initialize: {exc}")
            return Unavailable(
                f"{self.dialect.value.capitalize()} transpiler failed to initialize: {exc}"
            )

        logger.info(f"Transpiler for {self.dialect.value} ready ({self.package})")
        return Ready(transpiler)


def _default_handles() -> dict[Dialect, TranspilerHandle]:
    return {
        Dialect.COCONUT: TranspilerHandle(Dialect.COCONUT, "coconut", CoconutTranspiler),
    }


_HANDLES = _default_handles()


def get_transpiler_handle(dialect: Dialect) -> TranspilerHandle:
    """Return the process-wide handle for a foreign dialect."""
    try:
        return _HANDLES[dialect]
    except KeyError:
        raise ValueError(f"No transpiler registered for dialect '{dialect}'") from None


def transpiler_handles() -> dict[Dialect, TranspilerHandle]:
    return dict(_HANDLES)


@dataclass(slots=True)
class TranspilerHealth:
    """Availability information for one dialect."""

    dialect: str
    available: bool
    detail: str


def detect_transpiler_health(
    handles: dict[Dialect, TranspilerHandle] | None = None,
) -> dict[str, TranspilerHealth]:
    """Probe transpiler availability without triggering acquisition."""
    handles = _HANDLES if handles is None else handles
    results = [TranspilerHealth(dialect=Dialect.PYTHON.value, available=True, detail="host-native")]

    for dialect in sorted(FOREIGN_DIALECTS, key=lambda d: d.value):
        handle = handles.get(dialect)
        if handle is None:
            results.append(
                TranspilerHealth(dialect=dialect.value, available=False, detail="not registered")
            )
            continue

        state = handle.state
        if state is HandleState.AVAILABLE:
            results.append(
                TranspilerHealth(dialect=dialect.value, available=True, detail=f"{handle.package} loaded")
            )
        elif state is HandleState.FAILED:
            results.append(
                TranspilerHealth(
                    dialect=dialect.value,
                    available=False,
                    detail=f"{handle.package} failed to load (pip install {handle.package})",
                )
            )
        elif importlib.util.find_spec(handle.package) is None:
            results.append(
                TranspilerHealth(
                    dialect=dialect.value,
                    available=False,
                    detail=f"{handle.package} not installed (pip install {handle.package})",
                )
            )
        else:
            results.append(
                TranspilerHealth(dialect=dialect.value, available=True, detail=f"{handle.package} available")
            )

    return {entry.dialect: entry for entry in results}

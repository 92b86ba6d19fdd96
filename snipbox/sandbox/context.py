"""
Per-run sandbox contexts.

A context is the namespace a snippet is executed in. It holds only the names
enumerated here: ``SAFE_BUILTINS``, the capture bindings (``print``, ``log``),
the timer bindings in ``TIMER_BINDINGS`` and, for transpiled dialects, the
transpiler's runtime helpers. Helpers that alias a host builtin outside
``SAFE_BUILTINS`` or start threads and processes are dropped.

This is a cooperative sandbox. Restricting the reachable names keeps
well-behaved snippets away from the filesystem, network and process state,
but object introspection can still reach the host interpreter. It is not a
security boundary for adversarial code.
"""

from __future__ import annotations

import builtins
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..core.config import DEFAULT_ALLOWED_MODULES
from .timers import TimerQueue

TRUNCATION_MARKER = "... [truncated]"

# Builtins available to snippets. open, eval, exec, compile, input, globals,
# locals, vars, breakpoint, exit, quit and help are deliberately absent.
SAFE_BUILTINS: dict[str, Any] = {
    # Core types
    "True": True,
    "False": False,
    "None": None,
    "Ellipsis": Ellipsis,
    "NotImplemented": NotImplemented,
    # Type constructors
    "int": int,
    "float": float,
    "complex": complex,
    "str": str,
    "bool": bool,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "set": set,
    "frozenset": frozenset,
    "bytes": bytes,
    "bytearray": bytearray,
    "object": object,
    "property": property,
    "staticmethod": staticmethod,
    "classmethod": classmethod,
    "super": super,
    # Iterables
    "range": range,
    "enumerate": enumerate,
    "zip": zip,
    "map": map,
    "filter": filter,
    "sorted": sorted,
    "reversed": reversed,
    "iter": iter,
    "next": next,
    # Math/comparison
    "len": len,
    "min": min,
    "max": max,
    "sum": sum,
    "abs": abs,
    "round": round,
    "pow": pow,
    "divmod": divmod,
    "hash": hash,
    # String/char
    "chr": chr,
    "ord": ord,
    "repr": repr,
    "ascii": ascii,
    "format": format,
    "bin": bin,
    "hex": hex,
    "oct": oct,
    # Type checking
    "type": type,
    "isinstance": isinstance,
    "issubclass": issubclass,
    "hasattr": hasattr,
    "getattr": getattr,
    "setattr": setattr,
    "delattr": delattr,
    "callable": callable,
    "id": id,
    # Collections
    "all": all,
    "any": any,
    "slice": slice,
    # Class statements
    "__build_class__": builtins.__build_class__,
    # Exceptions
    "BaseException": BaseException,
    "Exception": Exception,
    "ArithmeticError": ArithmeticError,
    "AssertionError": AssertionError,
    "AttributeError": AttributeError,
    "ImportError": ImportError,
    "IndexError": IndexError,
    "KeyError": KeyError,
    "LookupError": LookupError,
    "ModuleNotFoundError": ModuleNotFoundError,
    "NameError": NameError,
    "NotImplementedError": NotImplementedError,
    "OverflowError": OverflowError,
    "RecursionError": RecursionError,
    "RuntimeError": RuntimeError,
    "StopIteration": StopIteration,
    "TypeError": TypeError,
    "ValueError": ValueError,
    "ZeroDivisionError": ZeroDivisionError,
}

CAPTURE_BINDINGS = ("print", "log")
TIMER_BINDINGS = ("call_later", "cancel_call", "call_every", "cancel_every")

# Transpiler runtime names that spawn threads or processes.
DENIED_RUNTIME_BINDINGS = frozenset({"process_map", "parallel_map", "concurrent_map"})


class CaptureBuffer:
    """Ordered, append-only text accumulator for one run."""

    def __init__(self, max_chars: int = 50_000):
        self._fragments: list[str] = []
        self._size = 0
        self._max_chars = max_chars
        self.truncated = False

    def append(self, text: str) -> None:
        if self.truncated:
            return
        remaining = self._max_chars - self._size
        if len(text) > remaining:
            self._fragments.append(text[:remaining])
            self._fragments.append(TRUNCATION_MARKER)
            self._size = self._max_chars
            self.truncated = True
            return
        self._fragments.append(text)
        self._size += len(text)

    @property
    def fragments(self) -> list[str]:
        return list(self._fragments)

    def getvalue(self) -> str:
        return "".join(self._fragments)


class _CaptureLog:
    """``log`` binding: every level writes to the same buffer as ``print``."""

    __slots__ = ("_write",)

    def __init__(self, write):
        self._write = write

    def debug(self, *args: Any) -> None:
        self._write(args)

    def info(self, *args: Any) -> None:
        self._write(args)

    def warning(self, *args: Any) -> None:
        self._write(args)

    def error(self, *args: Any) -> None:
        self._write(args)


def _make_print(buffer: CaptureBuffer):
    def capture_print(*args: Any, sep: str | None = " ", end: str | None = "\n", file: Any = None, flush: bool = False) -> None:
        """Print to the run's output buffer."""
        sep = " " if sep is None else sep
        end = "\n" if end is None else end
        buffer.append(sep.join(str(arg) for arg in args) + end)

    capture_print.__name__ = "print"
    return capture_print


def _runtime_binding_allowed(name: str) -> bool:
    """
    Reject runtime helpers that shadow or alias a host builtin missing from
    ``SAFE_BUILTINS`` (``open``, ``py_open``, ``py_print``, ...).
    """
    if name in DENIED_RUNTIME_BINDINGS:
        return False
    for candidate in (name, name[3:] if name.startswith("py_") else None):
        if candidate and hasattr(builtins, candidate) and candidate not in SAFE_BUILTINS:
            return False
    return True


def _make_import(allowed: frozenset[str]):
    real_import = builtins.__import__

    def guarded_import(name: str, globals=None, locals=None, fromlist=(), level: int = 0):
        root = name.partition(".")[0]
        if level != 0 or root not in allowed:
            raise ImportError(f"import of '{name}' is not allowed in the sandbox")
        return real_import(name, globals, locals, fromlist, level)

    return guarded_import


@dataclass(slots=True)
class SandboxContext:
    """Isolated namespace, output buffer and timers owned by one run."""

    namespace: dict[str, Any]
    buffer: CaptureBuffer
    timers: TimerQueue
    capabilities: frozenset[str] = field(default_factory=frozenset)
    closed: bool = False

    def close(self) -> None:
        """Cancel pending timers and drop the namespace."""
        if self.closed:
            return
        self.timers.close()
        self.namespace.clear()
        self.closed = True

    def __enter__(self) -> "SandboxContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class SandboxContextBuilder:
    """Builds a brand-new :class:`SandboxContext` for every run."""

    def __init__(
        self,
        allowed_modules: Iterable[str] | None = None,
        max_output_chars: int = 50_000,
    ):
        modules = DEFAULT_ALLOWED_MODULES if allowed_modules is None else allowed_modules
        self.allowed_modules = frozenset(modules)
        self.max_output_chars = max_output_chars

    def build(self, runtime_bindings: dict[str, Any] | None = None) -> SandboxContext:
        buffer = CaptureBuffer(max_chars=self.max_output_chars)
        timers = TimerQueue()
        capture_print = _make_print(buffer)

        safe_builtins = dict(SAFE_BUILTINS)
        safe_builtins["print"] = capture_print
        safe_builtins["__import__"] = _make_import(self.allowed_modules)

        bindings: dict[str, Any] = {
            "print": capture_print,
            "log": _CaptureLog(lambda args: capture_print(*args)),
            "call_later": timers.call_later,
            "cancel_call": timers.cancel_call,
            "call_every": timers.call_every,
            "cancel_every": timers.cancel_every,
        }

        namespace: dict[str, Any] = {}
        for name, value in (runtime_bindings or {}).items():
            if name not in bindings and _runtime_binding_allowed(name):
                namespace[name] = value
        namespace.update(bindings)
        namespace["__builtins__"] = safe_builtins
        namespace["__name__"] = "__main__"

        return SandboxContext(
            namespace=namespace,
            buffer=buffer,
            timers=timers,
            capabilities=frozenset(namespace) - {"__builtins__", "__name__"},
        )

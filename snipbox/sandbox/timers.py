"""
Timer primitives exposed to snippets.

Callbacks are queued on a :class:`sched.scheduler` and run on the evaluation
worker after the snippet body returns, one at a time, in due order. The
queue knows the run's deadline and refuses to wait past it.
"""

from __future__ import annotations

import contextlib
import itertools
import math
import sched
import time
from typing import Any, Callable

from ..core.exceptions import SnippetDeadlineExceeded


class TimerQueue:
    """Per-run timer queue. Handles are small integers."""

    def __init__(self) -> None:
        self._scheduler = sched.scheduler(time.monotonic, self._delay)
        self._events: dict[int, sched.Event] = {}
        self._intervals: dict[int, tuple[float, Callable[..., Any], tuple[Any, ...]]] = {}
        self._ids = itertools.count(1)
        self._deadline: float | None = None
        self._closed = False

    # ── Bindings ──────────────────────────────────────────────────────

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> int:
        """Run ``callback(*args)`` once after ``delay`` seconds."""
        self._check_callable(callback)
        handle = next(self._ids)
        self._events[handle] = self._scheduler.enter(
            self._seconds(delay), 0, self._fire_once, (handle, callback, args)
        )
        return handle

    def cancel_call(self, handle: int) -> None:
        """Cancel a pending ``call_later``. Unknown handles are ignored."""
        self._cancel(handle)

    def call_every(self, interval: float, callback: Callable[..., Any], *args: Any) -> int:
        """Run ``callback(*args)`` every ``interval`` seconds until cancelled."""
        self._check_callable(callback)
        handle = next(self._ids)
        interval = self._seconds(interval)
        self._intervals[handle] = (interval, callback, args)
        self._events[handle] = self._scheduler.enter(interval, 0, self._fire_repeating, (handle,))
        return handle

    def cancel_every(self, handle: int) -> None:
        """Cancel a ``call_every`` registration. Unknown handles are ignored."""
        self._intervals.pop(handle, None)
        self._cancel(handle)

    # ── Run loop ──────────────────────────────────────────────────────

    @property
    def pending(self) -> int:
        return len(self._events)

    def drain(self, deadline: float) -> None:
        """
        Run queued callbacks until none remain.

        Raises :class:`SnippetDeadlineExceeded` as soon as the next callback
        would be due after ``deadline`` (a ``time.monotonic()`` value).
        """
        self._deadline = deadline
        self._scheduler.run()

    def close(self) -> None:
        """Drop every pending timer."""
        self._closed = True
        self._intervals.clear()
        for handle in list(self._events):
            self._cancel(handle)

    # ── Internal helpers ──────────────────────────────────────────────

    def _delay(self, seconds: float) -> None:
        if self._deadline is not None and time.monotonic() + seconds > self._deadline:
            raise SnippetDeadlineExceeded()
        if seconds > 0:
            time.sleep(seconds)

    def _fire_once(self, handle: int, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._events.pop(handle, None)
        callback(*args)

    def _fire_repeating(self, handle: int) -> None:
        entry = self._intervals.get(handle)
        if entry is None:
            return
        interval, callback, args = entry
        # Reschedule first so the callback can cancel itself.
        self._events[handle] = self._scheduler.enter(interval, 0, self._fire_repeating, (handle,))
        callback(*args)

    def _cancel(self, handle: int) -> None:
        event = self._events.pop(handle, None)
        if event is not None:
            with contextlib.suppress(ValueError):
                self._scheduler.cancel(event)

    def _check_callable(self, callback: Any) -> None:
        if self._closed:
            raise RuntimeError("timer queue is closed")
        if not callable(callback):
            raise TypeError(f"timer callback must be callable, not {type(callback).__name__}")

    @staticmethod
    def _seconds(delay: float) -> float:
        delay = float(delay)
        if math.isnan(delay):
            raise ValueError("timer delay must be a number")
        return max(delay, 0.0)

"""
Clocks and cancellable periodic tasks.

Everything that "ticks" (source adapters, playback) schedules one-shot
callbacks on a Clock and re-arms after each tick. Two clocks are provided:

- ManualClock: virtual time, advanced explicitly. Deterministic; used by
  tests and by offline simulation.
- AsyncioClock: real time on an asyncio event loop (loop.call_later).

Both are single-threaded: callbacks run on whoever drives the clock.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Callable, List, Optional, Protocol, Tuple, Union


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now(self) -> float:
        """Seconds since epoch."""
        ...

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


def now_ms(clock: Clock) -> int:
    return int(round(clock.now() * 1000.0))


class _ManualTimer:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """
    Virtual clock. Timers fire only inside advance()/run_until_idle(), in due
    order (FIFO among equal due times), with now() set to each timer's due time.
    """

    def __init__(self, start_s: float = 0.0):
        self._now = float(start_s)
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualTimer]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> _ManualTimer:
        t = _ManualTimer(self._now + max(0.0, float(delay_s)), callback)
        heapq.heappush(self._queue, (t.due, next(self._seq), t))
        return t

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float) -> int:
        """Move time forward, firing every timer due on the way. Returns #fired."""
        target = self._now + max(0.0, float(seconds))
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, t = heapq.heappop(self._queue)
            if t.cancelled:
                continue
            self._now = due
            t.callback()
            fired += 1
        self._now = target
        return fired

    def advance_ms(self, ms: float) -> int:
        return self.advance(ms / 1000.0)

    def run_until_idle(self, max_callbacks: int = 100_000) -> int:
        """Fire timers until none remain (bounded, periodic tasks never go idle)."""
        fired = 0
        while fired < max_callbacks:
            live = [(d, s, t) for d, s, t in self._queue if not t.cancelled]
            if not live:
                break
            due = min(d for d, _, _ in live)
            fired += self.advance(due - self._now)
        return fired


class AsyncioClock:
    """Wall-clock time with callbacks on the running asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def now(self) -> float:
        return time.time()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay_s)), callback)


Period = Union[float, Callable[[], float]]


class PeriodicTask:
    """
    Repeating callback built from one-shot timers.

    The period is read each time the next tick is armed, so changing it only
    affects ticks armed afterwards. At most one tick is pending at any time;
    cancel() takes effect synchronously, and the callback may cancel its own
    task.
    """

    def __init__(self, clock: Clock, callback: Callable[[], None], period_s: Period, name: str = "task"):
        self.clock = clock
        self.name = name
        self._callback = callback
        self._period = period_s
        self._handle: Optional[TimerHandle] = None
        self._active = False

    @property
    def running(self) -> bool:
        return self._active

    def period(self) -> float:
        p = self._period() if callable(self._period) else self._period
        if p <= 0:
            raise ValueError(f"{self.name}: period must be > 0")
        return float(p)

    def start(self) -> bool:
        if self._active:
            return False
        self._arm()
        self._active = True
        return True

    def cancel(self) -> bool:
        was_active = self._active
        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        return was_active

    def _arm(self) -> None:
        self._handle = self.clock.call_later(self.period(), self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._active:
            return
        try:
            self._callback()
        finally:
            # callback may have cancelled (or cancelled and restarted) us
            if self._active and self._handle is None:
                self._arm()

from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Optional

from common.events import Publisher, Subscription
from common.logging_setup import get_logger
from common.timers import Clock, PeriodicTask
from common.types import CombinedRecord, Log
from common.utils import clamp


log = get_logger("playback")


class PlaybackState(str, Enum):
    STOPPED = "stopped"  # no Log, or an empty one
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"


class PlaybackScheduler:
    """
    Discrete replay: one record per tick, tick period = base_period / speed.

    Records are replayed exactly as captured; nothing is synthesized between
    them, so irregular capture spacing is not reproduced in real time.

    Lifecycle:
        STOPPED --load(N>0)--> READY --play--> PLAYING <--pause/play--> PAUSED
        PLAYING --last record--> READY
    """

    def __init__(self, clock: Clock, base_period_ms: int = 1000, speed: float = 1.0):
        if base_period_ms <= 0:
            raise ValueError("base_period_ms must be > 0")
        self.clock = clock
        self.base_period_ms = int(base_period_ms)
        self._speed = 1.0
        self._log: Log = Log()
        self._cursor: Optional[int] = None
        self.state = PlaybackState.STOPPED
        self._records: Publisher[CombinedRecord] = Publisher("playback.records", log)
        self._task = PeriodicTask(clock, self._tick, self.period_s, name="playback")
        self.set_speed(speed)

    # ---- read side ----

    @property
    def log(self) -> Log:
        return self._log

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    @property
    def speed(self) -> float:
        return self._speed

    def period_s(self) -> float:
        return self.base_period_ms / 1000.0 / self._speed

    def current(self) -> Optional[CombinedRecord]:
        if self._cursor is None:
            return None
        return self._log[self._cursor]

    def subscribe(self, handler: Callable[[CombinedRecord], None]) -> Subscription:
        return self._records.subscribe(handler)

    def unsubscribe(self, sub: Subscription) -> bool:
        return self._records.unsubscribe(sub)

    # ---- controls ----

    def load(self, new_log: Log) -> None:
        self._task.cancel()
        self._log = new_log
        if len(new_log) == 0:
            self._cursor = None
            self.state = PlaybackState.STOPPED
            log.info("Loaded empty log; playback disabled")
            return
        self._cursor = 0
        self.state = PlaybackState.READY
        log.info("Loaded log", extra={"extra": {"records": len(new_log), "span_ms": new_log.span_ms}})
        self._records.publish(new_log[0])

    def play(self) -> bool:
        if self.state not in (PlaybackState.READY, PlaybackState.PAUSED) or self._cursor is None:
            log.debug("play ignored", extra={"extra": {"state": self.state.value}})
            return False
        if self._cursor >= len(self._log) - 1:
            log.debug("play ignored: at end of log", extra={"extra": {"cursor": self._cursor}})
            return False
        self.state = PlaybackState.PLAYING
        self._task.start()
        log.info("Playback started", extra={"extra": {"cursor": self._cursor, "speed": self._speed}})
        return True

    def pause(self) -> bool:
        if self.state is not PlaybackState.PLAYING:
            return False
        self._task.cancel()
        self.state = PlaybackState.PAUSED
        log.info("Playback paused", extra={"extra": {"cursor": self._cursor}})
        return True

    def seek(self, index: int) -> Optional[CombinedRecord]:
        if self._cursor is None:
            log.debug("seek ignored: no log loaded")
            return None
        self._cursor = clamp(int(index), 0, len(self._log) - 1)
        record = self._log[self._cursor]
        self._records.publish(record)
        return record

    def set_speed(self, multiplier: float) -> bool:
        try:
            m = float(multiplier)
        except (TypeError, ValueError):
            m = math.nan
        if not math.isfinite(m) or m <= 0:
            log.warning("Ignoring invalid playback speed", extra={"extra": {"speed": multiplier}})
            return False
        self._speed = m
        if self.state is PlaybackState.PLAYING:
            # pending tick is re-armed at the new period
            self._task.cancel()
            self._task.start()
        return True

    def stop(self) -> None:
        """Cancel any pending tick and drop back to READY/STOPPED, keeping the cursor."""
        self._task.cancel()
        if self.state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            self.state = PlaybackState.READY

    # ---- tick ----

    def _tick(self) -> None:
        if self._cursor is None:
            self._task.cancel()
            return
        last = len(self._log) - 1
        if self._cursor >= last:
            # reached via seek to the end while playing
            self._finish()
            return
        self._cursor += 1
        self._records.publish(self._log[self._cursor])
        if self._cursor == last:
            self._finish()

    def _finish(self) -> None:
        self._task.cancel()
        self.state = PlaybackState.READY
        log.info("Playback reached end of log", extra={"extra": {"records": len(self._log)}})

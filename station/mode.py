from __future__ import annotations

from typing import Callable, Optional

from common.events import Publisher, Subscription
from common.logging_setup import get_logger
from common.types import CombinedRecord, Mode
from fusion.coordinator import FusionCoordinator
from playback.scheduler import PlaybackScheduler, PlaybackState
from recording.store import RecordingStore


log = get_logger("mode")


class ModeController:
    """
    Multiplexes the live and playback producers into one "current record"
    feed. Only the producer matching the active mode reaches consumers; the
    other one keeps running (or not) without being seen.

    In live mode every fused record is offered to the recorder before it is
    published. A recording session only exists in live mode, so switching to
    playback finalizes an armed session.
    """

    def __init__(self, fusion: FusionCoordinator, playback: PlaybackScheduler, recorder: RecordingStore):
        self.fusion = fusion
        self.playback = playback
        self.recorder = recorder
        self.mode = Mode.LIVE
        self.current: Optional[CombinedRecord] = None
        self._out: Publisher[CombinedRecord] = Publisher("combined", log)
        fusion.subscribe(self._on_live)
        playback.subscribe(self._on_playback)

    @property
    def is_live(self) -> bool:
        return self.mode is Mode.LIVE

    def on_combined_record(self, callback: Callable[[CombinedRecord], None]) -> Subscription:
        return self._out.subscribe(callback)

    def unsubscribe(self, sub: Subscription) -> bool:
        return self._out.unsubscribe(sub)

    def switch(self, mode: Mode) -> bool:
        mode = Mode(mode)
        if mode is self.mode:
            return False
        self.mode = mode
        if mode is Mode.PLAYBACK:
            if self.recorder.is_logging():
                self.recorder.stop_logging()
            record = self.playback.current()
        else:
            if self.playback.state is PlaybackState.PLAYING:
                self.playback.pause()
            record = self.fusion.latest()
        log.info("Mode switched", extra={"extra": {"mode": mode.value, "has_record": record is not None}})
        self._set_current(record)
        return True

    def _on_live(self, record: CombinedRecord) -> None:
        if self.mode is not Mode.LIVE:
            return
        self.recorder.append(record)
        self._set_current(record)

    def _on_playback(self, record: CombinedRecord) -> None:
        if self.mode is not Mode.PLAYBACK:
            return
        self._set_current(record)

    def _set_current(self, record: Optional[CombinedRecord]) -> None:
        self.current = record
        if record is not None:
            self._out.publish(record)

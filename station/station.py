from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from common.config import StationConfig
from common.events import Subscription
from common.logging_setup import get_logger
from common.timers import AsyncioClock, Clock, now_ms
from common.types import AttitudeSample, CombinedRecord, Log, Mode, PositionSample
from common.utils import elapsed_seconds
from fusion.coordinator import FusionCoordinator
from playback.scheduler import PlaybackScheduler
from recording.codec import summarize
from recording.store import RecordingStore
from sources.attitude import MockAttitudeSource
from sources.base import SourceAdapter
from sources.position import MockPositionSource
from station.mode import ModeController


log = get_logger("station")


class GroundStation:
    """
    Explicit owner of one station's telemetry core.

    Every control exposed to the UI maps to one method here: mode toggle,
    start/stop recording, export, load-log, play/pause, seek, set speed.
    Lifecycle is explicit: init() connects and starts the sources,
    shutdown() releases them.

    Args:
        cfg: station parameters (see config/params.yaml).
        clock: timer source shared by sources and playback.
        attitude, position: adapters; mock sources are built from cfg if omitted.
    """

    def __init__(
        self,
        cfg: Optional[StationConfig] = None,
        clock: Optional[Clock] = None,
        attitude: Optional[SourceAdapter[AttitudeSample]] = None,
        position: Optional[SourceAdapter[PositionSample]] = None,
    ):
        self.cfg = cfg or StationConfig()
        self.clock = clock or AsyncioClock()
        self.attitude = attitude or MockAttitudeSource(
            self.clock, interval_ms=self.cfg.attitude.interval_ms, seed=self.cfg.attitude.seed
        )
        self.position = position or MockPositionSource(
            self.clock, interval_ms=self.cfg.position.interval_ms, seed=self.cfg.position.seed
        )
        self.fusion = FusionCoordinator()
        self._attach_sources()
        self.recorder = RecordingStore(self.clock, log_dir=self.cfg.log_dir)
        self.playback = PlaybackScheduler(
            self.clock, base_period_ms=self.cfg.playback.base_period_ms, speed=self.cfg.playback.speed
        )
        self.modes = ModeController(self.fusion, self.playback, self.recorder)
        self.loaded_log: Optional[str] = None
        self.started_at: Optional[int] = None

    # ---- lifecycle ----

    def init(self) -> Dict[str, bool]:
        if not self.fusion.attached:
            self._attach_sources()
        self.started_at = now_ms(self.clock)
        result = {
            "attitude": self.connect_attitude(),
            "position": self.connect_position(),
        }
        if self.modes.is_live or not self.cfg.playback.stop_streams:
            self.start_streams()
        log.info("Station initialized", extra={"extra": result})
        return result

    def shutdown(self) -> None:
        self.recorder.stop_logging()
        self.playback.stop()
        self.stop_streams()
        self.attitude.disconnect()
        self.position.disconnect()
        self.fusion.detach_all()
        log.info("Station shut down")

    def _attach_sources(self) -> None:
        self.fusion.attach_attitude(self.attitude)
        self.fusion.attach_position(self.position)

    # ---- sources ----

    def connect_attitude(self, endpoint: Optional[str] = None) -> bool:
        return self.attitude.connect(endpoint or self.cfg.attitude.endpoint)

    def connect_position(self, endpoint: Optional[str] = None) -> bool:
        return self.position.connect(endpoint or self.cfg.position.endpoint)

    def disconnect_attitude(self) -> bool:
        return self.attitude.disconnect()

    def disconnect_position(self) -> bool:
        return self.position.disconnect()

    def start_streams(self) -> None:
        self.attitude.start_stream()
        self.position.start_stream()

    def stop_streams(self) -> None:
        self.attitude.stop_stream()
        self.position.stop_stream()

    # ---- consumers ----

    @property
    def mode(self) -> Mode:
        return self.modes.mode

    @property
    def current_record(self) -> Optional[CombinedRecord]:
        return self.modes.current

    def on_combined_record(self, callback: Callable[[CombinedRecord], None]) -> Subscription:
        return self.modes.on_combined_record(callback)

    # ---- controls ----

    def set_mode(self, mode: Mode) -> bool:
        changed = self.modes.switch(mode)
        if changed and self.cfg.playback.stop_streams:
            if self.modes.is_live:
                self.start_streams()
            else:
                self.stop_streams()
        return changed

    def start_logging(self) -> bool:
        if not self.modes.is_live:
            log.warning("start_logging ignored: recording only exists in live mode")
            return False
        return self.recorder.start_logging()

    def stop_logging(self) -> Optional[Log]:
        return self.recorder.stop_logging()

    def export_log(self, fmt: str = "json") -> str:
        return self.recorder.export_log(fmt)

    def load_log(self, identifier: str) -> Log:
        """Raises LogNotFoundError/LogParseError without touching the active Log."""
        loaded = self.recorder.load_log_file(identifier)
        self.playback.load(loaded)
        self.loaded_log = identifier
        return loaded

    def play(self) -> bool:
        if self.modes.is_live:
            log.warning("play ignored: switch to playback mode first")
            return False
        return self.playback.play()

    def pause(self) -> bool:
        return self.playback.pause()

    def seek(self, index: int) -> Optional[CombinedRecord]:
        return self.playback.seek(index)

    def set_speed(self, multiplier: float) -> bool:
        return self.playback.set_speed(multiplier)

    # ---- diagnostics ----

    def status(self) -> Dict[str, Any]:
        current = self.current_record
        now = now_ms(self.clock)
        return {
            "mode": self.mode.value,
            "uptime_s": elapsed_seconds(self.started_at, now) if self.started_at is not None else None,
            "current_ts": current.timestamp if current else None,
            "sources": {
                s.kind: {
                    "connected": s.is_connected(),
                    "endpoint": s.endpoint,
                    "streaming": s.streaming,
                    "rate_hz": round(s.rate.rate_hz, 3),
                    "skipped_ticks": s.skipped_ticks,
                }
                for s in (self.attitude, self.position)
            },
            "recording": {
                "state": self.recorder.state.value,
                "log_path": self.recorder.log_path,
                "started_at": self.recorder.started_at,
                "elapsed_s": (
                    elapsed_seconds(self.recorder.started_at, now) if self.recorder.is_logging() else None
                ),
                "buffered": self.recorder.buffered,
            },
            "playback": {
                "state": self.playback.state.value,
                "cursor": self.playback.cursor,
                "length": len(self.playback.log),
                "speed": self.playback.speed,
                "loaded": self.loaded_log,
                "summary": summarize(self.playback.log),
            },
        }

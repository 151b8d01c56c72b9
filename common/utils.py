from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Optional


def iso_from_ms(ts_ms: int) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and 'Z' suffix."""
    dt = datetime.fromtimestamp(ts_ms / 1000.0, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def log_identifier(ts_ms: int) -> str:
    """File name for a recording started at ts_ms (':' is not filename-safe on Windows)."""
    return f"rocket_telemetry_{iso_from_ms(ts_ms).replace(':', '-')}.json"


def format_date(ts_ms: int) -> str:
    """e.g. 'Jun 10, 2024 14:03:07.123' (UTC)."""
    dt = datetime.fromtimestamp(ts_ms / 1000.0, tz=timezone.utc)
    return dt.strftime("%b %d, %Y %H:%M:%S") + f".{dt.microsecond // 1000:03d}"


def format_time(ts_ms: int) -> str:
    """HH:MM:SS (UTC)."""
    return datetime.fromtimestamp(ts_ms / 1000.0, tz=timezone.utc).strftime("%H:%M:%S")


def elapsed_seconds(start_ms: int, end_ms: Optional[int] = None) -> float:
    if end_ms is None:
        end_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    return (end_ms - start_ms) / 1000.0


def clamp(v: int, lo: int, hi: int) -> int:
    return min(hi, max(lo, v))


@dataclass(slots=True)
class RateTimer:
    """
    Sample-rate tracker over the last `window` source timestamps.

    Usage:
        rt = RateTimer(window=20)
        hz = rt.tick(sample.timestamp)
    """
    window: int = 20
    _times: Deque[int] = field(default_factory=deque)

    def __post_init__(self) -> None:
        self._times = deque(maxlen=max(2, self.window))

    def tick(self, t_ms: int) -> float:
        self._times.append(t_ms)
        return self.rate_hz

    @property
    def rate_hz(self) -> float:
        if len(self._times) < 2:
            return 0.0
        dt_ms = (self._times[-1] - self._times[0]) / (len(self._times) - 1)
        return 0.0 if dt_ms <= 0 else 1000.0 / dt_ms

    def reset(self) -> None:
        self._times.clear()

from __future__ import annotations

import math
from typing import Iterable, Optional

import numpy as np

from common.timers import Clock, now_ms
from common.types import PositionSample, Vector3
from sources.base import SourceAdapter


class MockPositionSource(SourceAdapter[PositionSample]):
    """
    Synthetic RTK fix: a slow circle around (100, 100, 50) with bounded jitter,
    and a gently rocking orientation whose heading drifts with time.

    The paths are functions of the clock only; nothing downstream depends on
    their exact values.

    Args:
        clock: provides sample timestamps and the emission timer.
        interval_ms: emission period.
        seed: RNG seed for the jitter.
        reachable: endpoints that accept a connection (None = any).
    """

    kind = "position"

    def __init__(
        self,
        clock: Clock,
        interval_ms: int = 1000,
        seed: Optional[int] = None,
        reachable: Optional[Iterable[str]] = None,
    ):
        super().__init__(clock, interval_ms=interval_ms, reachable=reachable)
        self._rng = np.random.default_rng(seed)

    def _jitter(self, amplitude: float) -> float:
        return float((self._rng.random() - 0.5) * amplitude)

    def _read(self) -> PositionSample:
        ts = now_ms(self.clock)
        position = Vector3(
            100.0 + math.sin(ts / 10000.0) * 50.0 + self._jitter(5.0),
            100.0 + math.cos(ts / 10000.0) * 50.0 + self._jitter(5.0),
            50.0 + math.sin(ts / 5000.0) * 20.0 + self._jitter(2.0),
        )
        orientation = Vector3(
            math.sin(ts / 2000.0) * 15.0 + self._jitter(2.0),
            math.cos(ts / 2000.0) * 15.0 + self._jitter(2.0),
            (ts / 10000.0) % 360.0,
        )
        return PositionSample(timestamp=ts, position=position, orientation=orientation)

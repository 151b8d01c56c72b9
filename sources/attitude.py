from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from common.timers import Clock, now_ms
from common.types import AttitudeSample, Vector3
from sources.base import SourceAdapter


GRAVITY = Vector3(0.0, 0.0, -9.81)


class MockAttitudeSource(SourceAdapter[AttitudeSample]):
    """
    Procedural stand-in for the rocket's attitude/inertial downlink.

    Vectors are uniform in [-5, 5) per axis, gravity is fixed, the free-heap
    counter sits in [10000, 15000) and the servo angle in [0, 180). Replace
    _open/_read with the serial decoder for real hardware.

    Args:
        clock: provides sample timestamps and the emission timer.
        interval_ms: emission period (1 Hz on the real link).
        seed: RNG seed for reproducible sessions (None = fresh entropy).
        reachable: endpoints that accept a connection (None = any).
    """

    kind = "attitude"

    def __init__(
        self,
        clock: Clock,
        interval_ms: int = 1000,
        seed: Optional[int] = None,
        reachable: Optional[Iterable[str]] = None,
    ):
        super().__init__(clock, interval_ms=interval_ms, reachable=reachable)
        self._rng = np.random.default_rng(seed)

    def _vec(self, half_range: float = 5.0) -> Vector3:
        v = (self._rng.random(3) - 0.5) * (2.0 * half_range)
        return Vector3.from_seq(v)

    def _read(self) -> AttitudeSample:
        ts = now_ms(self.clock)
        return AttitudeSample(
            timestamp=ts,
            euler_counter=(ts // 1000) % 10000,
            euler_angles=self._vec(),
            velocity=self._vec(),
            gravity=GRAVITY,
            angular_acceleration=self._vec(),
            linear_acceleration=self._vec(),
            free_heap_size=int(self._rng.integers(10000, 15000)),
            servo_angle=float(self._rng.random() * 180.0),
        )

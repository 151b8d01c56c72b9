"""
Unit tests for the fusion coordinator
"""

import os
import random
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.timers import ManualClock
from fusion import FusionCoordinator
from sources import MockAttitudeSource, MockPositionSource
from tests.factories import attitude, position


class TestFusionCoordinator:
    def test_attitude_then_position_scenario(self):
        """Attitude at t=1000 then position at t=1200 yields two records"""
        fusion = FusionCoordinator()
        out = []
        fusion.subscribe(out.append)

        fusion.on_attitude(attitude(1000, euler=(1, 2, 3)))
        fusion.on_position(position(1200, pos=(10, 20, 30)))

        assert len(out) == 2
        assert out[0].timestamp == 1000
        assert out[0].attitude.euler_angles.to_dict() == {"x": 1.0, "y": 2.0, "z": 3.0}
        assert out[0].position is None
        assert out[1].timestamp == 1200
        assert out[1].attitude is out[0].attitude
        assert out[1].position.position.to_dict() == {"x": 10.0, "y": 20.0, "z": 30.0}

    def test_one_record_per_sample_with_max_timestamp(self):
        """Arbitrary interleaving: exactly one publish per sample, stamped max(held)"""
        rng = random.Random(5)
        fusion = FusionCoordinator()
        out = []
        fusion.subscribe(out.append)

        t_att, t_pos = 0, 0
        held = {"att": None, "pos": None}
        expected = []
        for _ in range(200):
            if rng.random() < 0.5:
                t_att += rng.randint(0, 300)
                fusion.on_attitude(attitude(t_att))
                held["att"] = t_att
            else:
                t_pos += rng.randint(0, 300)
                fusion.on_position(position(t_pos))
                held["pos"] = t_pos
            expected.append(max(v for v in held.values() if v is not None))

        assert len(out) == 200
        assert [r.timestamp for r in out] == expected
        assert all(r.attitude is not None or r.position is not None for r in out)

    def test_overwrite_not_queue(self):
        fusion = FusionCoordinator()
        fusion.on_position(position(100, pos=(1, 1, 1)))
        fusion.on_position(position(200, pos=(2, 2, 2)))
        latest = fusion.latest()
        assert latest.timestamp == 200
        assert latest.position.position.x == 2.0

    def test_latest_none_until_first_sample(self):
        fusion = FusionCoordinator()
        assert fusion.latest() is None
        fusion.on_attitude(attitude(5))
        assert fusion.latest().timestamp == 5

    def test_listener_failure_does_not_break_fusion(self):
        fusion = FusionCoordinator()
        out = []

        def bad(_):
            raise ValueError("view crashed")

        fusion.subscribe(bad)
        fusion.subscribe(out.append)
        fusion.on_attitude(attitude(1))
        fusion.on_position(position(2))
        assert [r.timestamp for r in out] == [1, 2]
        assert fusion.published == 2

    def test_attached_adapters_drive_fusion(self):
        clock = ManualClock(start_s=100.0)
        att = MockAttitudeSource(clock, interval_ms=1000, seed=1)
        pos = MockPositionSource(clock, interval_ms=500, seed=2)
        fusion = FusionCoordinator()
        fusion.attach_attitude(att)
        fusion.attach_position(pos)
        out = []
        fusion.subscribe(out.append)
        for s in (att, pos):
            s.connect("sim")
            s.start_stream()

        clock.advance(2.0)
        # 2 attitude + 4 position samples
        assert len(out) == 6
        assert out[0].attitude is None  # position fires first at t+0.5
        assert out[-1].attitude is not None and out[-1].position is not None
        ts = [r.timestamp for r in out]
        assert ts == sorted(ts)

        assert fusion.attached
        fusion.detach_all()
        assert not fusion.attached
        clock.advance(2.0)
        assert len(out) == 6

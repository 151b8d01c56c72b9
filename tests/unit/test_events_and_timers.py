"""
Unit tests for the publisher and the clock/periodic-task layer
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.events import Publisher
from common.timers import ManualClock, PeriodicTask, now_ms


class TestPublisher:
    def test_handlers_called_in_subscription_order(self):
        pub = Publisher("t")
        calls = []
        pub.subscribe(lambda x: calls.append(("a", x)))
        pub.subscribe(lambda x: calls.append(("b", x)))
        pub.publish(1)
        assert calls == [("a", 1), ("b", 1)]

    def test_raising_handler_is_isolated(self):
        pub = Publisher("t")
        seen = []

        def boom(_):
            raise RuntimeError("listener bug")

        pub.subscribe(boom)
        pub.subscribe(seen.append)
        failures = pub.publish("x")
        assert failures == 1
        assert seen == ["x"]

    def test_unsubscribe(self):
        pub = Publisher("t")
        seen = []
        sub = pub.subscribe(seen.append)
        assert pub.unsubscribe(sub) is True
        assert pub.unsubscribe(sub) is False
        pub.publish(1)
        assert seen == []
        assert len(pub) == 0


class TestManualClock:
    def test_fires_in_due_order(self):
        clock = ManualClock()
        order = []
        clock.call_later(2.0, lambda: order.append("late"))
        clock.call_later(1.0, lambda: order.append("early"))
        clock.call_later(1.0, lambda: order.append("early2"))
        assert clock.advance(1.5) == 2
        assert order == ["early", "early2"]
        clock.advance(1.0)
        assert order == ["early", "early2", "late"]
        assert clock.now() == pytest.approx(2.5)

    def test_now_is_due_time_inside_callback(self):
        clock = ManualClock(start_s=10.0)
        stamps = []
        clock.call_later(0.25, lambda: stamps.append(now_ms(clock)))
        clock.advance(5.0)
        assert stamps == [10250]

    def test_cancelled_timer_does_not_fire(self):
        clock = ManualClock()
        fired = []
        h = clock.call_later(1.0, lambda: fired.append(1))
        h.cancel()
        assert clock.advance(2.0) == 0
        assert fired == []


class TestPeriodicTask:
    def test_ticks_at_period(self):
        clock = ManualClock()
        ticks = []
        task = PeriodicTask(clock, lambda: ticks.append(clock.now()), 0.5)
        task.start()
        clock.advance(2.0)
        assert ticks == pytest.approx([0.5, 1.0, 1.5, 2.0])

    def test_at_most_one_pending(self):
        clock = ManualClock()
        task = PeriodicTask(clock, lambda: None, 1.0)
        assert task.start() is True
        assert task.start() is False
        assert clock.pending == 1
        clock.advance(3.0)
        assert clock.pending == 1

    def test_cancel_is_synchronous(self):
        clock = ManualClock()
        ticks = []
        task = PeriodicTask(clock, lambda: ticks.append(1), 1.0)
        task.start()
        clock.advance(1.0)
        assert task.cancel() is True
        clock.advance(5.0)
        assert ticks == [1]
        assert clock.pending == 0

    def test_callback_may_cancel_itself(self):
        clock = ManualClock()
        ticks = []

        def cb():
            ticks.append(1)
            if len(ticks) == 2:
                task.cancel()

        task = PeriodicTask(clock, cb, 1.0)
        task.start()
        clock.advance(10.0)
        assert ticks == [1, 1]
        assert not task.running

    def test_period_change_applies_to_next_armed_tick(self):
        clock = ManualClock()
        period = {"s": 1.0}
        ticks = []
        task = PeriodicTask(clock, lambda: ticks.append(clock.now()), lambda: period["s"])
        task.start()                 # armed for t=1.0
        period["s"] = 0.25           # pending tick keeps its delay
        clock.advance(1.6)
        assert ticks == pytest.approx([1.0, 1.25, 1.5])

    def test_raising_callback_keeps_ticking(self):
        clock = ManualClock()
        calls = []

        def cb():
            calls.append(1)
            raise RuntimeError("tick failed")

        task = PeriodicTask(clock, cb, 1.0)
        task.start()
        with pytest.raises(RuntimeError):
            clock.advance(1.0)
        assert task.running
        assert clock.pending == 1

    def test_rejects_non_positive_period(self):
        task = PeriodicTask(ManualClock(), lambda: None, 0.0)
        with pytest.raises(ValueError):
            task.start()

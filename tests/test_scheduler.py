"""
WallClockScheduler Tests
========================
Deadline alignment and labels, driven with explicit timestamps.
"""

import threading
from datetime import datetime

from plantstation.workers.wallclock_scheduler import WallClockScheduler


def _scheduler(hours=None, minutes=None, **kwargs):
    hours = hours if hours is not None else []
    minutes = minutes if minutes is not None else []
    return WallClockScheduler(hours.append, minutes.append, **kwargs)


class TestDeadlines:
    def test_armed_on_next_boundaries(self):
        scheduler = _scheduler()
        scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))
        assert scheduler.next_hour == datetime(2024, 5, 1, 7, 0)
        assert scheduler.next_minute == datetime(2024, 5, 1, 7, 0)

    def test_nothing_fires_early(self):
        hours, minutes = [], []
        scheduler = _scheduler(hours, minutes)
        scheduler.arm(datetime(2024, 5, 1, 6, 58, 10))

        assert scheduler.run_pending(datetime(2024, 5, 1, 6, 58, 59)) == []
        assert hours == minutes == []

    def test_top_of_hour_fires_both(self):
        hours, minutes = [], []
        scheduler = _scheduler(hours, minutes)
        scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))

        fired = scheduler.run_pending(datetime(2024, 5, 1, 7, 0, 0, 2000))

        assert fired == ["minute", "hour"]
        assert hours == [7]
        assert minutes == [0]
        assert scheduler.next_hour == datetime(2024, 5, 1, 8, 0)
        assert scheduler.next_minute == datetime(2024, 5, 1, 7, 1)

    def test_late_wakeup_keeps_labels(self):
        hours, minutes = [], []
        scheduler = _scheduler(hours, minutes)
        scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))

        scheduler.run_pending(datetime(2024, 5, 1, 7, 0, 20))

        assert hours == [7]
        assert minutes == [0]

    def test_rearm_from_wall_clock_after_jump(self):
        hours, minutes = [], []
        scheduler = _scheduler(hours, minutes)
        scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))

        scheduler.run_pending(datetime(2024, 5, 1, 9, 0, 1))

        assert hours == [9]
        assert scheduler.next_hour == datetime(2024, 5, 1, 10, 0)

    def test_clock_stepping_backward_rearms(self):
        hours, minutes = [], []
        scheduler = _scheduler(hours, minutes)
        scheduler.arm(datetime(2024, 5, 1, 10, 0, 30))

        assert scheduler.run_pending(datetime(2024, 5, 1, 8, 0, 30)) == []
        assert scheduler.next_minute == datetime(2024, 5, 1, 8, 1)
        assert scheduler.next_hour == datetime(2024, 5, 1, 9, 0)
        assert scheduler.seconds_until_due(datetime(2024, 5, 1, 8, 0, 30)) == 30.0

        assert scheduler.run_pending(datetime(2024, 5, 1, 8, 1, 0)) == ["minute"]
        assert minutes == [1]
        assert hours == []

    def test_small_backward_step_keeps_deadlines(self):
        scheduler = _scheduler()
        scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))

        assert not scheduler.resync(datetime(2024, 5, 1, 6, 59, 0))
        assert scheduler.next_minute == datetime(2024, 5, 1, 7, 0)

    def test_midnight_wraps(self):
        hours = []
        scheduler = _scheduler(hours)
        scheduler.arm(datetime(2024, 5, 1, 23, 59, 59))

        scheduler.run_pending(datetime(2024, 5, 2, 0, 0, 0))

        assert hours == [0]
        assert scheduler.next_hour == datetime(2024, 5, 2, 1, 0)

    def test_seconds_until_due(self):
        scheduler = _scheduler()
        scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))
        assert scheduler.seconds_until_due(datetime(2024, 5, 1, 6, 59, 30)) == 30.0
        assert scheduler.seconds_until_due(datetime(2024, 5, 1, 7, 0, 5)) == 0.0


def test_callback_errors_do_not_stop_the_schedule():
    minutes = []

    def _broken(_hour):
        raise RuntimeError("boom")

    scheduler = WallClockScheduler(_broken, minutes.append)
    scheduler.arm(datetime(2024, 5, 1, 6, 59, 30))

    scheduler.run_pending(datetime(2024, 5, 1, 7, 0, 0))
    scheduler.run_pending(datetime(2024, 5, 1, 7, 1, 0))

    assert minutes == [0, 1]


def test_thread_fires_and_stops():
    fired = threading.Event()
    minutes = []

    def _on_minute(minute):
        minutes.append(minute)
        fired.set()

    # clock sits just past the first minute boundary once started
    times = iter([datetime(2024, 5, 1, 7, 0, 59, 999000)])

    def _clock():
        return next(times, datetime(2024, 5, 1, 7, 1, 0, 1000))

    scheduler = WallClockScheduler(lambda _h: None, _on_minute, clock=_clock)
    scheduler.start()
    try:
        assert fired.wait(timeout=5)
        assert scheduler.is_running()
    finally:
        scheduler.stop(timeout=5)

    assert not scheduler.is_running()
    assert minutes[0] == 1

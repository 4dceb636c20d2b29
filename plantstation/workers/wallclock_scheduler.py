"""
Wall-clock aligned scheduler for the hourly and per-minute update cycles.

A single daemon thread keeps two deadlines, the next top of the hour and the
next top of the minute. After a cycle fires its deadline is recomputed from
the wall clock instead of adding a fixed interval, so the schedule does not
drift and recovers from clock adjustments.

Author: PlantStation Team
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable

from plantstation.utils.time import local_now, next_top_of_hour, next_top_of_minute, truncate_to_hour, truncate_to_minute

logger = logging.getLogger(__name__)

# Wakeups may land slightly before or after a boundary; labels and next
# deadlines are computed with these margins.
HOUR_LABEL_MARGIN = timedelta(minutes=30)
HOUR_REARM_MARGIN = timedelta(minutes=90)
MINUTE_LABEL_MARGIN = timedelta(seconds=30)
MINUTE_REARM_MARGIN = timedelta(seconds=90)


class WallClockScheduler:
    """Fire ``on_hour(hour)`` at each top of hour and ``on_minute(minute)`` at each top of minute."""

    def __init__(
        self,
        on_hour: Callable[[int], object],
        on_minute: Callable[[int], object],
        *,
        clock: Callable[[], datetime] = local_now,
    ):
        self._on_hour = on_hour
        self._on_minute = on_minute
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.next_hour: datetime | None = None
        self.next_minute: datetime | None = None

    # ==================== Scheduler Control ====================

    def start(self) -> None:
        """Start the scheduler background thread."""
        if self.is_running():
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self.arm(self._clock())
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="WallClockScheduler")
        self._thread.start()
        logger.info("WallClockScheduler started, next hour at %s", self.next_hour)

    def stop(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop the scheduler; an in-flight cycle is allowed to complete.

        Args:
            wait: Wait for the scheduler thread to finish.
            timeout: Maximum wait time in seconds (None waits for the cycle).
        """
        self._stop_event.set()
        if wait and self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        logger.info("WallClockScheduler stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    # ==================== Core Scheduling Logic ====================

    def arm(self, now: datetime) -> None:
        """Set both deadlines to the next boundaries after ``now``."""
        self.next_hour = next_top_of_hour(now)
        self.next_minute = next_top_of_minute(now)

    def resync(self, now: datetime) -> bool:
        """Re-arm when a deadline lies further ahead than any boundary can.

        Happens after the wall clock steps backward (NTP correcting a board
        without an RTC). Returns True when the deadlines were reset.
        """
        if self.next_hour is None or self.next_minute is None:
            self.arm(now)
            return True
        if self.next_minute - now > MINUTE_REARM_MARGIN or self.next_hour - now > HOUR_REARM_MARGIN:
            logger.warning("Clock moved backward (now %s, next minute %s), re-arming", now, self.next_minute)
            self.arm(now)
            return True
        return False

    def seconds_until_due(self, now: datetime) -> float:
        deadline = min(self.next_hour, self.next_minute)
        return max(0.0, (deadline - now).total_seconds())

    def run_pending(self, now: datetime) -> list[str]:
        """Fire every cycle whose deadline has passed at ``now``.

        Returns the names of the cycles that fired, minute first.
        """
        self.resync(now)

        fired = []
        if now >= self.next_minute:
            minute = (now + MINUTE_LABEL_MARGIN).minute
            self.next_minute = truncate_to_minute(now + MINUTE_REARM_MARGIN)
            self._fire("minute", self._on_minute, minute)
            fired.append("minute")

        if self._stop_event.is_set():
            return fired

        if now >= self.next_hour:
            hour = (now + HOUR_LABEL_MARGIN).hour
            self.next_hour = truncate_to_hour(now + HOUR_REARM_MARGIN)
            self._fire("hour", self._on_hour, hour)
            fired.append("hour")
        return fired

    def _fire(self, name: str, callback: Callable[[int], object], value: int) -> None:
        logger.debug("Running %s cycle (%s)", name, value)
        try:
            callback(value)
        except Exception as e:
            logger.error("Error in %s cycle %s: %s", name, value, e, exc_info=True)

    def _run_loop(self) -> None:
        logger.debug("Scheduler loop started")
        while not self._stop_event.is_set():
            now = self._clock()
            self.resync(now)
            delay = self.seconds_until_due(now)
            if delay > 0:
                # re-check the clock after waking; wait() returns True on stop
                if self._stop_event.wait(delay):
                    break
                continue
            self.run_pending(now)
        logger.debug("Scheduler loop ended")

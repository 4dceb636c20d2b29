"""
Workers module for background threads.

- wallclock_scheduler: hourly and per-minute update cycles aligned to the wall clock
"""

__all__ = ["WallClockScheduler"]

from plantstation.workers.wallclock_scheduler import WallClockScheduler

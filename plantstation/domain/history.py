"""
Bounded sample history.

Series are plain ``list[int]`` kept in chronological order (newest last) so
they serialize directly into the snapshot and API documents. ``push_sample``
makes them behave like fixed-capacity ring buffers.
"""

from __future__ import annotations

from collections.abc import Sequence

HOUR_WINDOW_MINUTES = 60


def push_sample(series: list[int], value: int, max_len: int) -> list[int]:
    """Append ``value`` to ``series`` in place, dropping the oldest overflow.

    Args:
        series: Chronological sample list (mutated).
        value: New sample.
        max_len: Maximum number of samples kept (>= 1).

    Returns:
        The same list object, for chaining.
    """
    if max_len < 1:
        raise ValueError(f"max_len must be positive, got {max_len}")
    overflow = len(series) + 1 - max_len
    if overflow > 0:
        del series[:overflow]
    series.append(value)
    return series


def hour_median(series: Sequence[int]) -> int:
    """Lower median of the last hour of minute samples.

    Raises:
        ValueError: ``series`` is empty. Callers must check first.
    """
    if not series:
        raise ValueError("hour_median() requires at least one sample")
    window = sorted(series[-HOUR_WINDOW_MINUTES:])
    return window[len(window) // 2]


def last_or(series: Sequence[int], default: int = 0) -> int:
    """Most recent sample, or ``default`` when there is no history yet."""
    return series[-1] if series else default

"""
Calibration Engine
==================
Derives the per-plant watering model from hourly history.

Each hourly slot stores the weight measured at the top of the hour and the
watering duration applied right after it. Two consecutive weights therefore
bracket the watering of the earlier slot:

- watering > 0: the pair is a regression observation
  ``(weight_gain, watering_time)`` for the model
  ``watering_time = scale * weight_gain + offset``
- watering == 0: the pair is a dryout sample (weight lost in one dry hour)

Usage:
    result = calculate_dryout_and_watering_time(weights, waterings, calibration)
    if persist:
        calibration.scale, calibration.offset = result.scale, result.offset
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from plantstation.domain.station import Calibration

logger = logging.getLogger(__name__)

# Synthetic points are placed at +-1/8 of the mean observed weight gain
ANCHOR_SPREAD_DIVISOR = 8
# One low and one high outlier trimmed per 6 dryout samples
DRYOUT_TRIM_DIVISOR = 6
HOURS_PER_DAY = 24


def _trunc(value: float) -> int:
    """Truncate toward zero after discarding float noise below 1e-6."""
    return math.trunc(round(value, 6))


def _div_trunc(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero (``//`` floors negative results)."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


@dataclass
class RegressionSums:
    """Running sums for ordinary least squares on (gain, time) pairs."""

    n: int = 0
    gain_sum: float = 0.0
    gain_sq_sum: float = 0.0
    time_sum: float = 0.0
    dot_sum: float = 0.0

    def add(self, gain: float, time: float) -> None:
        self.n += 1
        self.gain_sum += gain
        self.gain_sq_sum += gain * gain
        self.time_sum += time
        self.dot_sum += gain * time

    @property
    def mean_gain(self) -> float:
        return self.gain_sum / self.n

    @property
    def is_degenerate(self) -> bool:
        return self.n == 0 or self.gain_sum * self.gain_sum >= self.gain_sq_sum * self.n

    def fit(self) -> tuple[float, float]:
        """Least-squares slope and intercept. Only valid when not degenerate."""
        n = float(self.n)
        scale = (self.dot_sum - self.time_sum * self.gain_sum / n) / (
            self.gain_sq_sum - self.gain_sum * self.gain_sum / n
        )
        offset = self.time_sum / n - scale * self.gain_sum / n
        return scale, offset

    def to_dict(self) -> dict[str, Any]:
        return {
            "n": self.n,
            "gain_sum": self.gain_sum,
            "gain_sq_sum": self.gain_sq_sum,
            "time_sum": self.time_sum,
            "dot_sum": self.dot_sum,
        }


@dataclass
class CalibrationResult:
    """Output of one calibration run."""

    dryout: int
    scale: int
    offset: int
    observations: int = 0
    dryout_samples: int = 0
    degenerate: bool = False
    clamped: str | None = None
    sums: RegressionSums = field(default_factory=RegressionSums)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dryout": self.dryout,
            "scale": self.scale,
            "offset": self.offset,
            "observations": self.observations,
            "dryout_samples": self.dryout_samples,
            "degenerate": self.degenerate,
            "clamped": self.clamped,
        }


def collect_samples(
    weights: Sequence[int],
    waterings: Sequence[int],
) -> tuple[list[tuple[int, int]], list[int]]:
    """Split aligned hourly history into regression observations and dryout samples.

    The series are aligned on their newest entries. A weight is paired with
    the watering at index ``i`` only while ``len(waterings) - i < len(weights)``,
    so with equal-length series the oldest weight is never used and the
    first pair starts one hour later. Pairs whose earlier weight is not
    positive (failed reading) are skipped.

    Returns:
        ``([(weight_gain, watering_time), ...], [weight_lost, ...])``
    """
    shift = len(weights) - len(waterings)
    observations: list[tuple[int, int]] = []
    dryout_samples: list[int] = []
    prev_weight = 0
    prev_watering = 0
    for i, watering in enumerate(waterings):
        if i + shift > 0:
            weight = weights[i + shift]
            if prev_weight > 0:
                if prev_watering > 0:
                    observations.append((weight - prev_weight, prev_watering))
                else:
                    dryout_samples.append(prev_weight - weight)
            prev_weight = weight
        prev_watering = watering
    return observations, dryout_samples


def estimate_dryout(samples: Sequence[int]) -> int:
    """Weight lost per 24 h, after trimming ``n // 6`` outliers from each end."""
    if not samples:
        logger.info("No dryout measured")
        return 0
    ordered = sorted(samples)
    trim = len(ordered) // DRYOUT_TRIM_DIVISOR
    kept = ordered[trim : len(ordered) - trim]
    # half a sample is added before truncating, so positive rates round to nearest
    return _div_trunc(sum(kept) * HOURS_PER_DAY + len(kept) // 2, len(kept))


def calculate_dryout_and_watering_time(
    weights: Sequence[int],
    waterings: Sequence[int],
    previous: Calibration,
) -> CalibrationResult:
    """Fit the watering model for one plant.

    Args:
        weights: Hourly weight series (chronological).
        waterings: Hourly applied watering durations in ms (chronological).
        previous: The plant's current calibration; used to stabilize the fit
            and returned unchanged when the fit is degenerate.

    Returns:
        CalibrationResult; never raises on degenerate input.
    """
    observations, dryout_samples = collect_samples(weights, waterings)

    sums = RegressionSums()
    for gain, time in observations:
        sums.add(float(gain), float(time))

    if previous.scale > 0 and sums.n > 0:
        # Anchor the fit to the previous model around the mean observed gain
        mean_gain = sums.mean_gain
        for gain in (
            mean_gain - mean_gain / ANCHOR_SPREAD_DIVISOR,
            mean_gain + mean_gain / ANCHOR_SPREAD_DIVISOR,
        ):
            sums.add(gain, previous.predict(gain))

    dryout = estimate_dryout(dryout_samples)

    degenerate = sums.is_degenerate
    if degenerate:
        logger.warning("Cannot calculate watering times, keeping previous model: %s", sums.to_dict())
        scale, offset = previous.scale, previous.offset
    else:
        fit_scale, fit_offset = sums.fit()
        scale, offset = _trunc(fit_scale), _trunc(fit_offset)

    clamped = None
    if offset < 0:
        # Line through the origin and the centroid
        logger.info("Clamping offset: scale=%s offset=%s", scale, offset)
        clamped = "offset"
        offset = 0
        if sums.gain_sum > 0:
            scale = _trunc(sums.time_sum / sums.gain_sum)
    elif scale < 0:
        logger.info("Clamping scale: scale=%s offset=%s", scale, offset)
        clamped = "scale"
        if sums.n > 0:
            offset = _trunc(0.5 * sums.time_sum / sums.n)
        if sums.gain_sum != 0:
            scale = _trunc(0.5 * sums.time_sum / sums.gain_sum)

    return CalibrationResult(
        dryout=dryout,
        scale=scale,
        offset=offset,
        observations=len(observations),
        dryout_samples=len(dryout_samples),
        degenerate=degenerate,
        clamped=clamped,
        sums=sums,
    )

"""
Watering decision for one plant.

The duration handed to the watering controller is the *additional* pump time
on top of the baseline its firmware adds by itself, which is why the model
offset is subtracted after clamping.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from plantstation.domain.calibration import CalibrationResult, calculate_dryout_and_watering_time
from plantstation.domain.station import PlantView

logger = logging.getLogger(__name__)


@dataclass
class WateringDecision:
    duration_ms: int
    predicted_ms: float
    weight_delta: int
    hours_since_watering: int
    average_weight: int
    calibration: CalibrationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration_ms": self.duration_ms,
            "predicted_ms": self.predicted_ms,
            "weight_delta": self.weight_delta,
            "hours_since_watering": self.hours_since_watering,
            "average_weight": self.average_weight,
            "calibration": self.calibration.to_dict(),
        }


def clamp(value: float, lower: float, upper: float) -> float:
    if value < lower:
        return lower
    if value > upper:
        return upper
    return value


def hours_since_last_watering(waterings: Sequence[int]) -> int:
    """Number of trailing zero entries in the hourly watering series."""
    hours = 0
    for duration in reversed(waterings):
        if duration > 0:
            break
        hours += 1
    return hours


def average_weight_since(weights: Sequence[int], hours: int, current: int) -> int:
    """Mean of the last ``hours`` hourly weights and the current reading."""
    recent = list(weights[len(weights) - hours :]) if hours > 0 else []
    return (sum(recent) + current) // (len(recent) + 1)


def calculate_watering(plant: PlantView, weight: int, *, persist: bool = False) -> WateringDecision:
    """Compute the pump duration (ms) that should bring ``plant`` to its target level.

    Args:
        plant: View of the plant's config, calibration and history.
        weight: Current weight reading.
        persist: Store the refitted calibration on the plant. Only scheduled
            watering decisions persist; diagnostic queries do not.
    """
    config = plant.config
    hours = hours_since_last_watering(plant.hourly_water)
    logger.info("Plant %s last watered %s hours ago", plant.index, hours + 1)

    average = average_weight_since(plant.hourly_weight, hours, weight)
    logger.info("Plant %s average weight since last watering: %s", plant.index, average)

    result = calculate_dryout_and_watering_time(plant.hourly_weight, plant.hourly_water, plant.calibration)

    delta = config.dst_level - weight
    predicted = result.scale * delta + result.offset

    if persist:
        plant.calibration.scale = result.scale
        plant.calibration.offset = result.offset

    logger.info(
        "Plant %s dryout: %s, wt scale: %s, wt offset: %s, delta weight: %s, watering time: %s",
        plant.index,
        result.dryout,
        result.scale,
        result.offset,
        delta,
        predicted,
    )

    duration = int(clamp(predicted, config.water_start, config.max_water)) - plant.calibration.offset
    return WateringDecision(
        duration_ms=duration,
        predicted_ms=predicted,
        weight_delta=delta,
        hours_since_watering=hours,
        average_weight=average,
        calibration=result,
    )

"""
Station Service
===============
Owns the Station state and runs the hourly and per-minute update cycles.

Locking:
    - every read of the Station takes the shared side of ``ReadWriteLock``
    - every mutation takes the exclusive side
    - sensor reads, watering and MQTT publishing happen outside the lock so
      API readers are never blocked by bus delays
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from plantstation.constants import (
    AMBIENT_SCALE,
    MQTT_MEASUREMENT_QOS,
    MQTT_WATER_QOS,
    PLANT_INDICES,
)
from plantstation.domain.calibration import CalibrationResult, calculate_dryout_and_watering_time
from plantstation.domain.exceptions import DeviceError, PublishError, ValidationError
from plantstation.domain.history import hour_median, last_or, push_sample
from plantstation.domain.station import PlantConfig, Station, check_plant_index
from plantstation.domain.watering import calculate_watering
from plantstation.hardware.mqtt.publisher import Publisher
from plantstation.hardware.sensors.sht3x import SHT3xSensor
from plantstation.hardware.wuc.driver import WateringController
from plantstation.hardware.wuc.protocol import SensorReading
from plantstation.services.persistence import PersistenceService
from plantstation.utils.concurrency import ReadWriteLock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MQTTTopics:
    """Base topics; empty strings disable publishing for that topic."""

    plants: tuple[str, str] = ("", "")
    humtemp: str = ""


@dataclass
class CycleResult:
    """Values recorded by one update cycle."""

    time: int
    weights: list[int]
    temperature: int
    humidity: int
    watering: list[int] = field(default_factory=lambda: [0 for _ in PLANT_INDICES])

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "weights": list(self.weights),
            "temperature": self.temperature,
            "humidity": self.humidity,
            "watering": list(self.watering),
        }


def _format_ambient(value: int) -> str:
    return str(value / AMBIENT_SCALE)


class StationService:
    """Update cycles, config changes and live device access for both plants."""

    def __init__(
        self,
        station: Station,
        wuc: WateringController,
        ambient: SHT3xSensor,
        publisher: Publisher,
        persistence: PersistenceService,
        topics: MQTTTopics | None = None,
    ):
        self._station = station
        self._wuc = wuc
        self._ambient = ambient
        self._publisher = publisher
        self._persistence = persistence
        self._topics = topics or MQTTTopics()
        self._lock = ReadWriteLock()

    # ==================== Locked access ====================

    @contextmanager
    def locked(self, *, exclusive: bool = False) -> Iterator[Station]:
        """Yield the Station with the shared (or exclusive) lock held."""
        lock_cm = self._lock.write_locked() if exclusive else self._lock.read_locked()
        with lock_cm:
            yield self._station

    def save_snapshot(self, *, exclusive: bool = False) -> None:
        self._persistence.save_snapshot(lambda: self.locked(exclusive=exclusive))

    def to_dict(self) -> dict[str, Any]:
        with self._lock.read_locked():
            return self._station.to_dict()

    # ==================== Configuration ====================

    def get_config(self, index: int) -> dict[str, int]:
        check_plant_index(index)
        with self._lock.read_locked():
            return self._station.config[index].to_dict()

    def update_config(self, index: int, changes: dict[str, Any]) -> dict[str, int]:
        """Merge ``changes`` into the config of plant ``index``.

        The merged array is written to the config file first and only then
        committed in memory, so a failed save leaves everything unchanged.

        Raises:
            ValidationError: merged values are inconsistent.
            PersistenceError: the config file could not be written.
        """
        check_plant_index(index)
        with self._lock.write_locked():
            merged = PlantConfig.from_dict(changes, base=self._station.config[index])
            if merged.water_start > merged.max_water:
                raise ValidationError("start must not exceed max")

            configs = list(self._station.config)
            configs[index] = merged
            self._persistence.save_configs([c.to_dict() for c in configs])
            self._station.config = configs

        logger.info("Plant %s config updated: %s", index, merged.to_dict())
        return merged.to_dict()

    # ==================== Sensor helpers ====================

    def _read_weights(self) -> Sequence[SensorReading]:
        try:
            return self._wuc.read_weights()
        except DeviceError as e:
            logger.warning("Failed to read weight: %s", e)
            return [SensorReading.failure(str(e)) for _ in PLANT_INDICES]

    def _read_ambient(self) -> tuple[int, int] | None:
        """Return ``(temperature, humidity)`` in hundredths, or None on failure."""
        try:
            temperature, humidity = self._ambient.sample()
        except DeviceError as e:
            logger.warning("Failed to read humidity and temperature: %s", e)
            return None
        return int(temperature * AMBIENT_SCALE), int(humidity * AMBIENT_SCALE)

    def _publish(self, topic: str, suffix: str, qos: int, retained: bool, payload: str) -> None:
        if not topic:
            return
        try:
            self._publisher.publish(f"{topic}/{suffix}", qos, retained, payload)
        except PublishError as e:
            logger.warning("MQTT publish failed: %s", e)

    # ==================== Update cycles ====================

    def _hour_weights(self) -> list[int]:
        with self._lock.read_locked():
            minute = [list(self._station.mindata.weight[i]) for i in PLANT_INDICES]
            fallback = [last_or(self._station.data.weight[i]) for i in PLANT_INDICES]

        if all(minute):
            return [hour_median(series) for series in minute]
        readings = self._read_weights()
        return [reading.value_or(last) for reading, last in zip(readings, fallback)]

    def _hour_ambient(self) -> tuple[int, int]:
        with self._lock.read_locked():
            minute_t = list(self._station.mindata.temperature)
            minute_h = list(self._station.mindata.humidity)
            last_t = last_or(self._station.data.temperature)
            last_h = last_or(self._station.data.humidity)

        if minute_t and minute_h:
            return hour_median(minute_t), hour_median(minute_h)
        sample = self._read_ambient()
        if sample is None:
            return last_t, last_h
        return sample

    def update_hour(self, hour: int) -> CycleResult:
        """Hourly cycle: record hourly samples and water plants that are due."""
        weights = self._hour_weights()
        temperature, humidity = self._hour_ambient()

        requested = [0 for _ in PLANT_INDICES]
        with self._lock.write_locked():
            for index, plant in self._station.plants().items():
                config = plant.config
                if hour == config.water_hour and weights[index] <= config.low_level:
                    decision = calculate_watering(plant, weights[index], persist=True)
                    requested[index] = decision.duration_ms

        applied = [0 for _ in PLANT_INDICES]
        for index in PLANT_INDICES:
            if requested[index] > 0:
                applied[index] = self._wuc.do_watering(index, requested[index])
            if applied[index] > 0:
                self._publish(self._topics.plants[index], "water", MQTT_WATER_QOS, False, str(applied[index]))

        with self._lock.write_locked():
            data = self._station.data
            data.time = hour
            for index in PLANT_INDICES:
                push_sample(data.weight[index], weights[index], data.max_len)
                push_sample(data.water[index], applied[index], data.max_len)
            push_sample(data.humidity, humidity, data.max_len)
            push_sample(data.temperature, temperature, data.max_len)

        result = CycleResult(hour, weights, temperature, humidity, applied)
        logger.info("Hourly update %s: %s", hour, result.to_dict())
        return result

    def update_minute(self, minute: int) -> CycleResult:
        """Per-minute cycle: record live samples and publish them."""
        with self._lock.read_locked():
            mindata = self._station.mindata
            last_w = [last_or(mindata.weight[i]) for i in PLANT_INDICES]
            last_t = last_or(mindata.temperature)
            last_h = last_or(mindata.humidity)

        readings = self._read_weights()
        weights = [reading.value_or(last) for reading, last in zip(readings, last_w)]
        sample = self._read_ambient()
        temperature, humidity = sample if sample is not None else (last_t, last_h)

        with self._lock.write_locked():
            mindata = self._station.mindata
            mindata.time = minute
            for index in PLANT_INDICES:
                push_sample(mindata.weight[index], weights[index], mindata.max_len)
            push_sample(mindata.humidity, humidity, mindata.max_len)
            push_sample(mindata.temperature, temperature, mindata.max_len)

        for index in PLANT_INDICES:
            self._publish(self._topics.plants[index], "weight", MQTT_MEASUREMENT_QOS, True, str(weights[index]))
        self._publish(self._topics.humtemp, "humidity", MQTT_MEASUREMENT_QOS, True, _format_ambient(humidity))
        self._publish(self._topics.humtemp, "temperature", MQTT_MEASUREMENT_QOS, True, _format_ambient(temperature))

        return CycleResult(minute, weights, temperature, humidity)

    # ==================== Diagnostics & live access ====================

    def calculate_diagnostic(self, index: int) -> CalibrationResult:
        """Run the calibration for plant ``index`` without storing the result."""
        check_plant_index(index)
        with self._lock.read_locked():
            plant = self._station.plant(index)
            return calculate_dryout_and_watering_time(plant.hourly_weight, plant.hourly_water, plant.calibration)

    def read_weights(self) -> tuple[int, int]:
        return self._wuc.read_weights_or_raise()

    def read_ambient(self) -> tuple[float, float]:
        """Live ``(temperature_c, humidity_pct)``."""
        return self._ambient.sample()

    def water(self, index: int, duration_ms: int) -> int:
        check_plant_index(index)
        logger.info("Manual watering of plant %s: %s ms", index, duration_ms)
        applied = self._wuc.do_watering(index, duration_ms)
        logger.info("Plant %s watered %s ms", index, applied)
        return applied

    def last_watering(self, index: int) -> int:
        check_plant_index(index)
        return self._wuc.read_last_watering(index)

    def watering_limit(self, index: int) -> int:
        check_plant_index(index)
        return self._wuc.read_watering_limit(index)

    def echo(self, values: Sequence[int]) -> list[int]:
        if any(not 0 <= v <= 0xFF for v in values):
            raise ValidationError("echo values must be bytes (0-255)")
        return list(self._wuc.echo(bytes(values)))

    def publisher_status(self) -> dict[str, Any]:
        return self._publisher.status()

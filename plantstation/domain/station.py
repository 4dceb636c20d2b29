"""
Station Domain Model
====================

In-memory state for the two plants: per-plant config and calibration plus
the hourly and minute measurement series. The serialized shape mirrors the
documents consumed by the web UI and written to the snapshot files::

    {
        "data": {"weight": [[...], [...]], "temperature": [...],
                 "humidity": [...], "water": [[...], [...]], "time": 7},
        "mindata": {...},
        "config": [{"hour": 7, "start": 2000, ...}, {...}],
        "watertime": [{"scale": 0, "offset": 0}, {...}],
    }

The model itself is not thread-safe; ``StationService`` guards every access
with its reader/writer lock.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from plantstation.constants import (
    BACKLOG_HOURS,
    BACKLOG_MINUTES,
    DEFAULT_DST_LEVEL,
    DEFAULT_LEVEL_RANGE,
    DEFAULT_LOW_LEVEL,
    DEFAULT_MAX_WATER_MS,
    DEFAULT_WATER_HOUR,
    DEFAULT_WATER_START_MS,
    PLANT_COUNT,
    PLANT_INDICES,
)
from plantstation.domain.exceptions import NotFoundError, ValidationError


def check_plant_index(index: int) -> int:
    """Return ``index`` if it names a plant, else raise ``NotFoundError``."""
    if index not in PLANT_INDICES:
        raise NotFoundError(f"Unknown plant index {index}")
    return index


@dataclass
class PlantConfig:
    """Per-plant watering configuration."""

    water_hour: int = DEFAULT_WATER_HOUR
    water_start: int = DEFAULT_WATER_START_MS
    max_water: int = DEFAULT_MAX_WATER_MS
    low_level: int = DEFAULT_LOW_LEVEL
    dst_level: int = DEFAULT_DST_LEVEL
    level_range: int = DEFAULT_LEVEL_RANGE

    # attribute name -> JSON key used by the config file and the web UI
    JSON_KEYS = {
        "water_hour": "hour",
        "water_start": "start",
        "max_water": "max",
        "low_level": "low",
        "dst_level": "dst",
        "level_range": "range",
    }

    def to_dict(self) -> dict[str, int]:
        return {key: getattr(self, attr) for attr, key in self.JSON_KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any], base: PlantConfig | None = None) -> PlantConfig:
        """Build a config from its JSON form; missing keys keep ``base`` values."""
        config = copy.copy(base) if base is not None else cls()
        for attr, key in cls.JSON_KEYS.items():
            if key in data:
                try:
                    setattr(config, attr, int(data[key]))
                except (TypeError, ValueError):
                    raise ValidationError(f"config value '{key}' must be an integer") from None
        return config


@dataclass
class Calibration:
    """Linear watering model: ``duration_ms = scale * weight_delta + offset``."""

    scale: int = 0
    offset: int = 0

    def predict(self, weight_delta: float) -> float:
        return weight_delta * self.scale + self.offset

    def to_dict(self) -> dict[str, int]:
        return {"scale": self.scale, "offset": self.offset}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Calibration:
        return cls(scale=int(data.get("scale", 0)), offset=int(data.get("offset", 0)))


def _empty_per_plant() -> list[list[int]]:
    return [[] for _ in range(PLANT_COUNT)]


def _int_series(values: Any, max_len: int) -> list[int]:
    if not values:
        return []
    return [int(v) for v in list(values)[-max_len:]]


@dataclass
class MeasurementData:
    """One resolution of history (hourly or per-minute)."""

    max_len: int
    weight: list[list[int]] = field(default_factory=_empty_per_plant)
    temperature: list[int] = field(default_factory=list)
    humidity: list[int] = field(default_factory=list)
    water: list[list[int]] = field(default_factory=_empty_per_plant)
    time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "weight": [list(s) for s in self.weight],
            "temperature": list(self.temperature),
            "humidity": list(self.humidity),
            "water": [list(s) for s in self.water],
            "time": self.time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, max_len: int) -> MeasurementData:
        """Restore from a snapshot; series longer than ``max_len`` keep their newest part."""
        result = cls(max_len=max_len)
        if not data:
            return result

        def per_plant(key: str) -> list[list[int]]:
            raw = data.get(key) or []
            series = [_int_series(s, max_len) for s in raw[:PLANT_COUNT]]
            while len(series) < PLANT_COUNT:
                series.append([])
            return series

        result.weight = per_plant("weight")
        result.water = per_plant("water")
        result.temperature = _int_series(data.get("temperature"), max_len)
        result.humidity = _int_series(data.get("humidity"), max_len)
        result.time = int(data.get("time") or 0)
        return result


@dataclass
class PlantView:
    """Everything the watering decision needs to know about one plant."""

    index: int
    config: PlantConfig
    calibration: Calibration
    hourly_weight: list[int]
    hourly_water: list[int]
    minute_weight: list[int]


@dataclass
class Station:
    """Process-wide state for both plants."""

    data: MeasurementData = field(default_factory=lambda: MeasurementData(max_len=BACKLOG_HOURS))
    mindata: MeasurementData = field(default_factory=lambda: MeasurementData(max_len=BACKLOG_MINUTES))
    config: list[PlantConfig] = field(default_factory=lambda: [PlantConfig() for _ in range(PLANT_COUNT)])
    watertime: list[Calibration] = field(default_factory=lambda: [Calibration() for _ in range(PLANT_COUNT)])

    def plant(self, index: int) -> PlantView:
        check_plant_index(index)
        return PlantView(
            index=index,
            config=self.config[index],
            calibration=self.watertime[index],
            hourly_weight=self.data.weight[index],
            hourly_water=self.data.water[index],
            minute_weight=self.mindata.weight[index],
        )

    def plants(self) -> dict[int, PlantView]:
        return {index: self.plant(index) for index in PLANT_INDICES}

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data.to_dict(),
            "mindata": self.mindata.to_dict(),
            "config": [c.to_dict() for c in self.config],
            "watertime": [c.to_dict() for c in self.watertime],
        }

    def measurements_to_dict(self) -> dict[str, Any]:
        return {"data": self.data.to_dict(), "mindata": self.mindata.to_dict()}

    def calibrations_to_list(self) -> list[dict[str, int]]:
        return [c.to_dict() for c in self.watertime]

    def configs_to_list(self) -> list[dict[str, int]]:
        return [c.to_dict() for c in self.config]

    def load_measurements(self, snapshot: dict[str, Any]) -> None:
        self.data = MeasurementData.from_dict(snapshot.get("data"), BACKLOG_HOURS)
        self.mindata = MeasurementData.from_dict(snapshot.get("mindata"), BACKLOG_MINUTES)

    def load_calibrations(self, items: list[dict[str, Any]]) -> None:
        for index, item in zip(PLANT_INDICES, items):
            self.watertime[index] = Calibration.from_dict(item)

    def load_configs(self, items: list[dict[str, Any]]) -> None:
        for index, item in zip(PLANT_INDICES, items):
            self.config[index] = PlantConfig.from_dict(item, base=PlantConfig())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Station:
        station = cls()
        station.load_measurements(data)
        station.load_calibrations(data.get("watertime") or [])
        station.load_configs(data.get("config") or [])
        return station

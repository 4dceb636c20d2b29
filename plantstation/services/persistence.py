"""
Persistence Service
===================
Loads and saves the three PlantStation files:

- measurement snapshot: ``{"data": ..., "mindata": ...}``
- calibration snapshot: ``[{"scale": .., "offset": ..}, ...]``
- plant config: ``[{"hour": .., "start": .., ...}, ...]``

Missing files mean "no history yet" / "use defaults". Files that exist but
cannot be read or parsed are configuration errors and stop the startup.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Callable

from infrastructure.storage import StoreError, load_json, save_json
from plantstation.domain.exceptions import ConfigurationError, PersistenceError, ValidationError
from plantstation.domain.station import Station
from plantstation.utils.concurrency import synchronized

if TYPE_CHECKING:
    from plantstation.config import AppConfig

logger = logging.getLogger(__name__)


class PersistenceService:
    """File-backed storage for the Station."""

    def __init__(self, data_path: str, watertime_path: str, config_path: str):
        self.data_path = data_path
        self.watertime_path = watertime_path
        self.config_path = config_path
        # serializes snapshot writers (signal handler vs. shutdown)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig) -> PersistenceService:
        return cls(config.data_file, config.watertime_file, config.plant_config_file)

    # ==================== Loading ====================

    def _load(self, path: str, default: Any, expected: type) -> Any:
        try:
            document = load_json(path, default=default)
        except StoreError as e:
            raise ConfigurationError(str(e)) from e
        if not isinstance(document, expected):
            raise ConfigurationError(f"{path}: expected a JSON {expected.__name__}")
        return document

    def load_station(self) -> Station:
        """Build the Station from the files on disk.

        Raises:
            ConfigurationError: a file exists but is unreadable or malformed.
        """
        station = Station()
        try:
            station.load_configs(self._load(self.config_path, [], list))
            station.load_measurements(self._load(self.data_path, {}, dict))
            station.load_calibrations(self._load(self.watertime_path, [], list))
        except (TypeError, ValueError, AttributeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid persisted state: {e}") from e

        logger.info(
            "Loaded state: %s hourly / %s minute samples per plant",
            [len(s) for s in station.data.weight],
            [len(s) for s in station.mindata.weight],
        )
        return station

    # ==================== Saving ====================

    def save_configs(self, configs: list[dict[str, int]]) -> None:
        try:
            save_json(self.config_path, configs)
        except StoreError as e:
            raise PersistenceError(str(e)) from e
        logger.info("Plant config saved to %s", self.config_path)

    @synchronized
    def save_snapshot(self, locked: Callable[[], AbstractContextManager[Station]]) -> None:
        """Write measurements and calibrations.

        Args:
            locked: Context manager factory yielding the Station while the
                appropriate lock is held (shared for periodic saves,
                exclusive for the final one).

        Raises:
            PersistenceError: a file could not be written.
        """
        with locked() as station:
            measurements = station.measurements_to_dict()
            calibrations = station.calibrations_to_list()
            try:
                save_json(self.data_path, measurements)
                save_json(self.watertime_path, calibrations)
            except StoreError as e:
                raise PersistenceError(str(e)) from e
        logger.info("Data saved")

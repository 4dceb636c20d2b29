"""
Internal hardware driver for the Sensirion SHT3x temperature/humidity sensor.
This module should only be used by the station service, not by routes.

Measurements, CRC checks and unit conversion are done by ``adafruit_sht31d``;
this class adds locking and maps library failures onto the PlantStation
exception types.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import adafruit_sht31d

from plantstation.domain.exceptions import BusError, SensorFaultError

logger = logging.getLogger(__name__)

SHT3X_DEFAULT_ADDRESS = 0x44


def _open_default_bus() -> Any:
    """I2C bus on the board's SCL/SDA pins (bus 1 on a Raspberry Pi)."""
    import board
    import busio

    return busio.I2C(board.SCL, board.SDA)


class SHT3xSensor:
    """Ambient sensor shared by both plants."""

    def __init__(self, address: int = SHT3X_DEFAULT_ADDRESS, i2c: Any | None = None):
        """
        Args:
            address: I2C address of the sensor (0x44 or 0x45).
            i2c: Open ``busio.I2C`` compatible bus; the board bus is opened
                by ``start()`` when omitted.
        """
        self.address = address
        self._i2c = i2c
        self._owns_bus = i2c is None
        self._device: adafruit_sht31d.SHT31D | None = None
        self._lock = threading.Lock()

    def start(self) -> None:
        """Open the bus and reset the sensor (the library resets on construction).

        Raises:
            BusError: the bus cannot be opened or the sensor does not answer.
        """
        with self._lock:
            try:
                if self._i2c is None:
                    self._i2c = _open_default_bus()
                self._device = adafruit_sht31d.SHT31D(self._i2c, address=self.address)
            except (OSError, ValueError, RuntimeError, NotImplementedError) as e:
                raise BusError(f"Failed to start SHT3x at {self.address:#04x}: {e}") from e
        logger.info("SHT3x sensor initialized at address %#04x", self.address)

    def sample(self) -> tuple[float, float]:
        """Return ``(temperature_c, humidity_pct)``.

        Raises:
            BusError: transport failure or sensor not started.
            SensorFaultError: the library rejected the measurement (CRC mismatch).
        """
        with self._lock:
            if self._device is None:
                raise BusError("SHT3x sensor not started")
            try:
                temperature = self._device.temperature
                humidity = self._device.relative_humidity
            except OSError as e:
                raise BusError(f"SHT3x read failed: {e}") from e
            except RuntimeError as e:
                raise SensorFaultError(f"SHT3x measurement rejected: {e}") from e
        return float(temperature), float(humidity)

    def close(self) -> None:
        with self._lock:
            self._device = None
            if self._i2c is not None and self._owns_bus:
                self._i2c.deinit()
                self._i2c = None

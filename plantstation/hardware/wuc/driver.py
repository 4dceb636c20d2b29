"""
Driver for the watering microcontroller (WUC) on the I2C bus.

The WUC has no ready line, so every request waits a fixed settle delay before
reading the answer. All exchanges are serialized by one lock that is held for
the whole request/response round trip, including those delays; the bus is
shared with the ambient sensor and the HTTP handlers may call in at any time.

Author: PlantStation Team
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol

from smbus2 import SMBus, i2c_msg

from plantstation.domain.exceptions import BusError, SensorFaultError
from plantstation.hardware.wuc.protocol import (
    FAULT_SENTINEL,
    Command,
    SensorReading,
    decode_weight,
    encode_command,
    ms_to_units,
    units_in_range,
    units_to_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_WUC_ADDRESS = 0x10
DEFAULT_SETTLE_DELAY_SECONDS = 0.7
WATERING_MARGIN_SECONDS = 0.5


class WucTransport(Protocol):
    """Raw byte transport to the WUC."""

    def write(self, data: bytes) -> int:
        """Send ``data``; return the number of bytes written."""
        ...

    def read(self, length: int) -> bytes:
        """Read up to ``length`` bytes."""
        ...

    def close(self) -> None: ...


class SMBusTransport:
    """WUC transport using plain I2C read/write transactions (no register byte)."""

    def __init__(self, bus_number: int = 1, address: int = DEFAULT_WUC_ADDRESS, bus: SMBus | None = None):
        self.address = address
        try:
            self._bus = bus if bus is not None else SMBus(bus_number)
        except OSError as e:
            raise BusError(f"Failed to open I2C bus {bus_number}: {e}") from e
        logger.info("WUC transport ready on I2C bus %s, address %#04x", bus_number, address)

    def write(self, data: bytes) -> int:
        self._bus.i2c_rdwr(i2c_msg.write(self.address, list(data)))
        return len(data)

    def read(self, length: int) -> bytes:
        msg = i2c_msg.read(self.address, length)
        self._bus.i2c_rdwr(msg)
        return bytes(list(msg))

    def close(self) -> None:
        self._bus.close()


class WateringController:
    """
    Request/response client for the WUC.

    Sensor reads raise ``BusError`` on transport failures and report the
    ``0xFF`` fault sentinel as ``SensorFaultError`` or a failed
    ``SensorReading``. Watering never raises: any failure means 0 ms applied.
    """

    def __init__(
        self,
        transport: WucTransport,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._transport = transport
        self._settle_delay = float(settle_delay)
        self._sleep = sleep
        self._lock = threading.Lock()

    # ==================== Low-level helpers ====================

    def _write(self, data: bytes) -> int:
        try:
            return self._transport.write(data)
        except OSError as e:
            raise BusError(f"I2C write failed: {e}") from e

    def _read(self, length: int) -> bytes:
        try:
            return self._transport.read(length)
        except OSError as e:
            raise BusError(f"I2C read failed: {e}") from e

    def _read_byte(self) -> int:
        payload = self._read(1)
        if len(payload) < 1:
            raise BusError("I2C read returned no data")
        return payload[0]

    def _read_weight(self, index: int) -> SensorReading:
        self._write(bytes([encode_command(Command.GET_WEIGHT, index)]))
        self._sleep(self._settle_delay)
        payload = self._read(2)
        if len(payload) != 2:
            return SensorReading.failure(f"invalid length of weight result #{index + 1}: {len(payload)}")
        if payload[1] == FAULT_SENTINEL:
            return SensorReading.failure(f"failed to measure weight #{index + 1}")
        return SensorReading.success(decode_weight(payload))

    # ==================== Sensor reads ====================

    def read_weights(self) -> tuple[SensorReading, SensorReading]:
        """Measure both plant weights, one after the other.

        Raises:
            BusError: on any transport failure (aborts immediately).
        """
        with self._lock:
            first = self._read_weight(0)
            second = self._read_weight(1)
        for reading in (first, second):
            if not reading.ok:
                logger.warning("Weight sensor fault: %s", reading.fault)
        return first, second

    def read_weights_or_raise(self) -> tuple[int, int]:
        """Like ``read_weights`` but any fault is an error."""
        first, second = self.read_weights()
        for reading in (first, second):
            if not reading.ok:
                raise SensorFaultError(reading.fault or "failed to measure weight")
        return first.value, second.value  # type: ignore[return-value]

    def _query_byte(self, command: Command, index: int, what: str) -> int:
        with self._lock:
            self._write(bytes([encode_command(command, index)]))
            value = self._read_byte()
        if value == FAULT_SENTINEL:
            raise SensorFaultError(f"failed to get {what}")
        return value

    def read_last_watering(self, index: int) -> int:
        """Duration in ms of the last watering of plant ``index``."""
        return units_to_ms(self._query_byte(Command.GET_LAST_WATERING, index, "last watering time"))

    def read_watering_limit(self, index: int) -> int:
        """Raw water limit measurement of plant ``index``."""
        return self._query_byte(Command.GET_WATER_LIMIT, index, "water limit")

    # ==================== Watering ====================

    def do_watering(self, index: int, requested_ms: int) -> int:
        """Run the pump of plant ``index`` and return the duration actually applied in ms.

        Blocks for ``requested_ms + 500`` ms while the pump runs. The WUC may
        apply less than requested (e.g. a safety cutoff); its answer wins.
        """
        units = ms_to_units(requested_ms)
        if requested_ms < 0 or not units_in_range(units):
            logger.error("Watering time out of range: %s (%s ms)", units, requested_ms)
            return 0

        command = bytes([encode_command(Command.WATERING, index), units])
        with self._lock:
            logger.info("Watering plant %s for %s ms", index, units_to_ms(units))
            try:
                written = self._write(command)
            except BusError as e:
                logger.error("Failed to send watering command: %s", e)
                return 0
            if written < len(command):
                logger.error("Could not send complete watering command: %s/%s", written, len(command))
                return 0

            # Wait for the pump to finish plus some margin
            self._sleep(requested_ms / 1000.0 + WATERING_MARGIN_SECONDS)

            try:
                applied_units = self._read_byte()
            except BusError as e:
                logger.error("Failed to read watering time: %s", e)
                return 0

        if applied_units != units:
            logger.warning("Plant %s watered %s ms (requested %s ms)", index, units_to_ms(applied_units), requested_ms)
        return units_to_ms(applied_units)

    # ==================== Diagnostics ====================

    def echo(self, payload: bytes) -> bytes:
        """Send ``payload`` with the echo command and return what the WUC sends back."""
        request = bytes([encode_command(Command.ECHO, 0)]) + bytes(payload)
        with self._lock:
            self._write(request)
            return self._read(len(request))

    def close(self) -> None:
        with self._lock:
            self._transport.close()

"""
Watering microcontroller (WUC) wire protocol.

Every request starts with one command byte: the command code in the high
seven bits and the plant index in the lowest bit. Responses are raw bytes; a
value of ``0xFF`` in the significant byte means the device could not measure.

Durations travel in device units of 250 ms, so a single byte covers 0-63.75 s.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

INDEX_BITS = 1
INDEX_MASK = (1 << INDEX_BITS) - 1
MAX_COMMAND_CODE = 0xFF >> INDEX_BITS

FAULT_SENTINEL = 0xFF

UNIT_MS = 250
MAX_UNITS = 0xFF


class Command(IntEnum):
    """WUC command codes."""

    GET_LAST_WATERING = 0x10
    GET_WATER_LIMIT = 0x11
    GET_WEIGHT = 0x12
    WATERING = 0x1A
    ECHO = 0x29


def encode_command(code: int, index: int) -> int:
    """Pack a command code and a plant index into one command byte."""
    if not 0 <= int(code) <= MAX_COMMAND_CODE:
        raise ValueError(f"command code out of range: {code:#x}")
    return ((int(code) << INDEX_BITS) | (index & INDEX_MASK)) & 0xFF


def decode_command(byte: int) -> tuple[int, int]:
    """Split a command byte into ``(code, index)``."""
    return (byte & 0xFF) >> INDEX_BITS, byte & INDEX_MASK


def ms_to_units(ms: int) -> int:
    """Round a duration in ms to the nearest device unit.

    Division truncates toward zero, so small negative durations round to 0
    and larger ones stay negative (and are rejected by the caller).
    """
    total = ms + UNIT_MS // 2
    units = abs(total) // UNIT_MS
    return units if total >= 0 else -units


def units_to_ms(units: int) -> int:
    return units * UNIT_MS


def units_in_range(units: int) -> bool:
    return 0 <= units <= MAX_UNITS


def decode_weight(payload: bytes) -> int:
    """Little-endian 16 bit weight."""
    return payload[0] | (payload[1] << 8)


@dataclass(frozen=True)
class SensorReading:
    """Tagged sensor result: either a value or a fault description, never both.

    Keeps the ``0xFF`` sentinel from ever being mistaken for a real sample.
    """

    value: int | None = None
    fault: str | None = None

    @classmethod
    def success(cls, value: int) -> SensorReading:
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> SensorReading:
        return cls(fault=reason)

    @property
    def ok(self) -> bool:
        return self.fault is None and self.value is not None

    def value_or(self, default: int) -> int:
        return self.value if self.ok else default

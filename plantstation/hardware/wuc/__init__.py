"""Watering microcontroller protocol and driver."""

from .driver import SMBusTransport, WateringController, WucTransport
from .protocol import Command, SensorReading, decode_command, encode_command

__all__ = [
    "Command",
    "SensorReading",
    "SMBusTransport",
    "WateringController",
    "WucTransport",
    "decode_command",
    "encode_command",
]

"""Ambient sensor drivers."""

from .sht3x import SHT3xSensor

__all__ = ["SHT3xSensor"]

"""
Domain Package
==============
Plant state, bounded history and the adaptive watering model.

Everything here is pure Python with no I/O and no locking; the service layer
owns concurrency and hardware access.
"""

from .calibration import CalibrationResult, calculate_dryout_and_watering_time
from .history import hour_median, push_sample
from .station import Calibration, MeasurementData, PlantConfig, PlantView, Station
from .watering import WateringDecision, calculate_watering

__all__ = [
    # History
    "push_sample",
    "hour_median",
    # State
    "Calibration",
    "MeasurementData",
    "PlantConfig",
    "PlantView",
    "Station",
    # Model
    "CalibrationResult",
    "calculate_dryout_and_watering_time",
    "WateringDecision",
    "calculate_watering",
]

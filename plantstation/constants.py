"""
PlantStation constants: history bounds, plant defaults and device units.
"""

from __future__ import annotations

# Two independent plants share one watering microcontroller
PLANT_COUNT = 2
PLANT_INDICES = (0, 1)

# History bounds
BACKLOG_DAYS = 8
BACKLOG_HOURS = BACKLOG_DAYS * 24  # hourly series: 192 samples
BACKLOG_MINUTES = 8 * 60  # minute series: 480 samples

# Plant config defaults (durations in ms, levels in sensor units)
DEFAULT_WATER_HOUR = 7
DEFAULT_WATER_START_MS = 2000
DEFAULT_MAX_WATER_MS = 20000
DEFAULT_LOW_LEVEL = 1400
DEFAULT_DST_LEVEL = 1500
DEFAULT_LEVEL_RANGE = 100

# Ambient samples are stored as hundredths (centi-degrees / centi-percent)
AMBIENT_SCALE = 100

# MQTT publish settings for the measurement topics
MQTT_WATER_QOS = 2
MQTT_MEASUREMENT_QOS = 0
MQTT_PUBLISH_TIMEOUT_SECONDS = 10.0

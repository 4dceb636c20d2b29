"""
Configuration for PlantStation
==============================
Runtime settings loaded from ``PLANTSTATION_*`` environment variables, plus
the logging setup shared by the server and the CLI tools.

The per-plant watering settings are not here: they live in the plant config
file and can be changed at runtime through the API.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any

from plantstation.domain.exceptions import ConfigurationError

DEFAULT_STATE_DIR = "/var/opt/plantstation"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        # base 0 accepts I2C addresses written as 0x10
        return int(value, 0)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Environment variable {name} must be a number.") from None


def _state_path(name: str, filename: str) -> str:
    return os.getenv(name, os.path.join(DEFAULT_STATE_DIR, filename))


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("PLANTSTATION_ENV", "development"))
    host: str = field(default_factory=lambda: os.getenv("PLANTSTATION_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PLANTSTATION_PORT", 8080))
    DEBUG: bool = field(default_factory=lambda: _env_bool("PLANTSTATION_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("PLANTSTATION_LOG_LEVEL", "INFO"))

    # HTTP basic auth for the config and watering endpoints
    auth_user: str = field(default_factory=lambda: os.getenv("PLANTSTATION_AUTH_USER", "admin"))
    auth_pass: str = field(default_factory=lambda: os.getenv("PLANTSTATION_AUTH_PASS", ""))

    # State files
    plant_config_file: str = field(default_factory=lambda: _state_path("PLANTSTATION_CONFIG_FILE", "plant.conf"))
    data_file: str = field(default_factory=lambda: _state_path("PLANTSTATION_DATA_FILE", "data.json"))
    watertime_file: str = field(default_factory=lambda: _state_path("PLANTSTATION_WATERTIME_FILE", "watertime.json"))

    # I2C devices (the SHT3x sits on the board SCL/SDA bus)
    i2c_bus: int = field(default_factory=lambda: _env_int("PLANTSTATION_I2C_BUS", 1))
    wuc_address: int = field(default_factory=lambda: _env_int("PLANTSTATION_WUC_ADDRESS", 0x10))
    sht_address: int = field(default_factory=lambda: _env_int("PLANTSTATION_SHT_ADDRESS", 0x44))
    settle_delay: float = field(default_factory=lambda: _env_float("PLANTSTATION_SETTLE_DELAY", 0.7))

    # MQTT (disabled unless a host is set)
    mqtt_host: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_HOST", ""))
    mqtt_port: int = field(default_factory=lambda: _env_int("PLANTSTATION_MQTT_PORT", 1883))
    mqtt_client_id: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_CLIENT_ID", "plantstation"))
    mqtt_user: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_USER", ""))
    mqtt_pass: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_PASS", ""))
    mqtt_timeout: float = field(default_factory=lambda: _env_float("PLANTSTATION_MQTT_TIMEOUT", 10.0))
    plant1_topic: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_PLANT1_TOPIC", "plantstation/plant1"))
    plant2_topic: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_PLANT2_TOPIC", "plantstation/plant2"))
    humtemp_topic: str = field(default_factory=lambda: os.getenv("PLANTSTATION_MQTT_HUMTEMP_TOPIC", "plantstation/ambient"))

    enable_scheduler: bool = field(default_factory=lambda: _env_bool("PLANTSTATION_ENABLE_SCHEDULER", True))

    # Optional directory with the browser UI, served at /
    web_dir: str = field(default_factory=lambda: os.getenv("PLANTSTATION_WEB_DIR", ""))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.environment == "production" and not self.auth_pass:
            raise ConfigurationError(
                "PLANTSTATION_AUTH_PASS must be set in production; config and watering endpoints need it."
            )
        if not 0 <= self.port <= 65535:
            raise ConfigurationError(f"Invalid port: {self.port}")

    @property
    def mqtt_enabled(self) -> bool:
        return bool(self.mqtt_host)

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "ENV": self.environment,
            "DEBUG": self.DEBUG,
            "AUTH_USER": self.auth_user,
            "AUTH_PASS": self.auth_pass,
        }


def setup_logging(debug: bool = False, level: str | None = None) -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level = logging.DEBUG if debug else logging.getLevelName((level or "INFO").upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid duplicate handlers when called more than once (tests, CLI + server)
    has_console = any(getattr(h, "name", "") == "plantstation_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "plantstation_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "plantstation_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        os.makedirs("logs", exist_ok=True)
        file_handler = RotatingFileHandler(
            "logs/plantstation.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "plantstation_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    for handler in root.handlers:
        if getattr(handler, "name", "") in {"plantstation_console", "plantstation_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    if _env_bool("PLANTSTATION_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()

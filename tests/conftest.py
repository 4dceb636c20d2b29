"""
Shared test fixtures for the PlantStation test suite.

Provides:
- FakeWuc: in-memory watering microcontroller speaking the wire protocol
- FakeAmbient / FakePublisher: stand-ins for the SHT3x sensor and MQTT
- A StationService and a Flask test client wired to the fakes

Usage:
    def test_example(station_service, fake_wuc):
        fake_wuc.weights = [1300, 1500]
        station_service.update_hour(7)
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import pytest

from plantstation import create_app
from plantstation.config import AppConfig
from plantstation.domain.exceptions import PublishError, SensorFaultError
from plantstation.domain.station import Station
from plantstation.hardware.wuc.driver import WateringController
from plantstation.hardware.wuc.protocol import FAULT_SENTINEL, Command, decode_command
from plantstation.services.container import ServiceContainer
from plantstation.services.persistence import PersistenceService
from plantstation.services.station_service import MQTTTopics, StationService
from plantstation.workers.wallclock_scheduler import WallClockScheduler

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("plantstation").setLevel(logging.WARNING)
logging.getLogger("infrastructure").setLevel(logging.WARNING)

AUTH_USER = "admin"
AUTH_PASS = "secret"


# ========================== Fakes ==========================================


class FakeWuc:
    """Scripted WUC behind the ``WucTransport`` interface.

    ``weights`` entries of ``None`` answer with the fault sentinel.
    ``applied_units`` overrides the units the WUC reports after watering
    (default: echo the requested units).
    """

    def __init__(self, weights: list[int | None] | None = None):
        self.weights: list[int | None] = list(weights) if weights is not None else [1500, 1500]
        self.applied_units: int | None = None
        self.last_watering_units = [0, 0]
        self.limits = [42, 43]
        self.writes: list[bytes] = []
        self.fail_with: OSError | None = None
        self.short_write = False
        self.closed = False
        self._pending = b""

    def write(self, data: bytes) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        data = bytes(data)
        self.writes.append(data)
        code, index = decode_command(data[0])
        if code == Command.GET_WEIGHT:
            weight = self.weights[index]
            self._pending = bytes([0, FAULT_SENTINEL]) if weight is None else bytes([weight & 0xFF, weight >> 8])
        elif code == Command.WATERING:
            units = data[1] if self.applied_units is None else self.applied_units
            self._pending = bytes([units])
        elif code == Command.GET_LAST_WATERING:
            self._pending = bytes([self.last_watering_units[index]])
        elif code == Command.GET_WATER_LIMIT:
            self._pending = bytes([self.limits[index]])
        elif code == Command.ECHO:
            self._pending = data
        if self.short_write:
            return len(data) - 1
        return len(data)

    def read(self, length: int) -> bytes:
        if self.fail_with is not None:
            raise self.fail_with
        data, self._pending = self._pending[:length], self._pending[length:]
        return data

    def close(self) -> None:
        self.closed = True

    def commands(self) -> list[tuple[int, int]]:
        return [decode_command(w[0]) for w in self.writes]


class FakeAmbient:
    """SHT3x stand-in returning a fixed ``(temperature_c, humidity_pct)``."""

    def __init__(self, temperature: float = 21.5, humidity: float = 45.25):
        self.temperature = temperature
        self.humidity = humidity
        self.fail = False
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def sample(self) -> tuple[float, float]:
        if self.fail:
            raise SensorFaultError("SHT3x CRC mismatch")
        return self.temperature, self.humidity

    def close(self) -> None:
        self.closed = True


class FakePublisher:
    def __init__(self):
        self.messages: list[tuple[str, int, bool, str]] = []
        self.fail = False
        self.closed = False

    def publish(self, topic: str, qos: int, retained: bool, payload: str) -> None:
        if self.fail:
            raise PublishError(f"Failed to publish to {topic}")
        self.messages.append((topic, qos, retained, payload))

    def status(self) -> dict[str, Any]:
        return {"enabled": True, "messages": len(self.messages)}

    def close(self) -> None:
        self.closed = True

    def topics(self) -> list[str]:
        return [m[0] for m in self.messages]


# ========================== Fixtures =======================================


@pytest.fixture()
def fake_wuc():
    return FakeWuc()


@pytest.fixture()
def fake_ambient():
    return FakeAmbient()


@pytest.fixture()
def fake_publisher():
    return FakePublisher()


@pytest.fixture()
def sleeps():
    """Records the sleeps requested by drivers instead of sleeping."""
    return []


@pytest.fixture()
def wuc(fake_wuc, sleeps):
    return WateringController(fake_wuc, settle_delay=0.7, sleep=sleeps.append)


@pytest.fixture()
def app_config(tmp_path):
    return AppConfig(
        environment="testing",
        auth_user=AUTH_USER,
        auth_pass=AUTH_PASS,
        plant_config_file=str(tmp_path / "plant.conf"),
        data_file=str(tmp_path / "data.json"),
        watertime_file=str(tmp_path / "watertime.json"),
        mqtt_host="",
        enable_scheduler=False,
    )


@pytest.fixture()
def persistence(app_config):
    return PersistenceService.from_config(app_config)


@pytest.fixture()
def station():
    return Station()


@pytest.fixture()
def station_service(station, wuc, fake_ambient, fake_publisher, persistence):
    topics = MQTTTopics(plants=("plants/one", "plants/two"), humtemp="ambient")
    return StationService(station, wuc, fake_ambient, fake_publisher, persistence, topics)


@pytest.fixture()
def container(app_config, persistence, wuc, fake_ambient, fake_publisher, station_service):
    scheduler = WallClockScheduler(station_service.update_hour, station_service.update_minute)
    return ServiceContainer(
        config=app_config,
        persistence=persistence,
        wuc=wuc,
        ambient=fake_ambient,
        publisher=fake_publisher,
        station_service=station_service,
        scheduler=scheduler,
    )


@pytest.fixture()
def app(container):
    flask_app = create_app(container=container)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_headers():
    token = base64.b64encode(f"{AUTH_USER}:{AUTH_PASS}".encode()).decode()
    return {"Authorization": f"Basic {token}"}

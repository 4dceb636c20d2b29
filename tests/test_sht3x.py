"""
SHT3x Driver Tests
==================
``adafruit_sht31d.SHT31D`` is replaced by a scripted stand-in.
"""

from unittest.mock import MagicMock

import pytest

from plantstation.domain.exceptions import BusError, SensorFaultError
from plantstation.hardware.sensors import sht3x
from plantstation.hardware.sensors.sht3x import SHT3xSensor


class FakeSHT31D:
    instances = []

    def __init__(self, i2c, address=0x44):
        self.i2c = i2c
        self.address = address
        self.error = None
        self._temperature = 25.0
        self._humidity = 50.0
        FakeSHT31D.instances.append(self)

    @property
    def temperature(self):
        if self.error is not None:
            raise self.error
        return self._temperature

    @property
    def relative_humidity(self):
        return self._humidity


@pytest.fixture()
def fake_library(monkeypatch):
    FakeSHT31D.instances = []
    monkeypatch.setattr(sht3x.adafruit_sht31d, "SHT31D", FakeSHT31D)
    return FakeSHT31D


def test_start_creates_device_on_given_bus(fake_library):
    i2c = MagicMock()
    sensor = SHT3xSensor(address=0x45, i2c=i2c)

    sensor.start()

    device = fake_library.instances[0]
    assert device.i2c is i2c
    assert device.address == 0x45


def test_start_failure_is_bus_error(monkeypatch):
    def missing(i2c, address):
        raise ValueError("No I2C device at address: 0x44")

    monkeypatch.setattr(sht3x.adafruit_sht31d, "SHT31D", missing)

    with pytest.raises(BusError):
        SHT3xSensor(i2c=MagicMock()).start()


def test_sample(fake_library):
    sensor = SHT3xSensor(i2c=MagicMock())
    sensor.start()

    assert sensor.sample() == (25.0, 50.0)


def test_transport_error_is_bus_error(fake_library):
    sensor = SHT3xSensor(i2c=MagicMock())
    sensor.start()
    fake_library.instances[0].error = OSError("Remote I/O error")

    with pytest.raises(BusError):
        sensor.sample()


def test_crc_mismatch_is_sensor_fault(fake_library):
    sensor = SHT3xSensor(i2c=MagicMock())
    sensor.start()
    fake_library.instances[0].error = RuntimeError("CRC mismatch")

    with pytest.raises(SensorFaultError):
        sensor.sample()


def test_sample_before_start():
    with pytest.raises(BusError):
        SHT3xSensor(i2c=MagicMock()).sample()


def test_close_keeps_injected_bus(fake_library):
    i2c = MagicMock()
    sensor = SHT3xSensor(i2c=i2c)
    sensor.start()

    sensor.close()

    i2c.deinit.assert_not_called()
    with pytest.raises(BusError):
        sensor.sample()


def test_close_releases_opened_bus(fake_library, monkeypatch):
    i2c = MagicMock()
    monkeypatch.setattr(sht3x, "_open_default_bus", lambda: i2c)
    sensor = SHT3xSensor()
    sensor.start()

    sensor.close()

    i2c.deinit.assert_called_once()

"""
Station Model Tests
===================
"""

import pytest

from plantstation.constants import BACKLOG_HOURS, BACKLOG_MINUTES
from plantstation.domain.exceptions import NotFoundError, ValidationError
from plantstation.domain.station import Calibration, MeasurementData, PlantConfig, Station


class TestPlantConfig:
    def test_defaults(self):
        assert PlantConfig().to_dict() == {
            "hour": 7,
            "start": 2000,
            "max": 20000,
            "low": 1400,
            "dst": 1500,
            "range": 100,
        }

    def test_partial_update_keeps_base(self):
        base = PlantConfig(water_hour=9)
        merged = PlantConfig.from_dict({"low": 1200}, base=base)
        assert merged.water_hour == 9
        assert merged.low_level == 1200
        assert base.low_level == 1400

    def test_non_integer_rejected(self):
        with pytest.raises(ValidationError):
            PlantConfig.from_dict({"hour": "seven"})


class TestMeasurementData:
    def test_restore_trims_to_bound(self):
        data = MeasurementData.from_dict({"weight": [list(range(300)), [1]]}, max_len=BACKLOG_HOURS)
        assert len(data.weight[0]) == BACKLOG_HOURS
        assert data.weight[0][-1] == 299
        assert data.weight[1] == [1]

    def test_restore_missing(self):
        data = MeasurementData.from_dict(None, max_len=5)
        assert data.weight == [[], []]
        assert data.time == 0


class TestStation:
    def test_plant_view_shares_state(self):
        station = Station()
        plant = station.plant(1)
        plant.hourly_weight.append(1234)
        plant.calibration.scale = 4
        assert station.data.weight[1] == [1234]
        assert station.watertime[1].scale == 4

    def test_unknown_plant(self):
        with pytest.raises(NotFoundError):
            Station().plant(2)

    def test_round_trip(self):
        station = Station()
        station.data.weight[0] = [1300, 1310]
        station.data.water[0] = [0, 2500]
        station.data.temperature = [2150]
        station.data.humidity = [4525]
        station.data.time = 7
        station.mindata.weight[1] = [1500]
        station.watertime[0] = Calibration(10, 500)
        station.config[1] = PlantConfig(water_hour=8)

        restored = Station.from_dict(station.to_dict())

        assert restored == station
        assert restored.mindata.max_len == BACKLOG_MINUTES

    def test_document_shape(self):
        document = Station().to_dict()
        assert set(document) == {"data", "mindata", "config", "watertime"}
        assert set(document["data"]) == {"weight", "temperature", "humidity", "water", "time"}
        assert document["watertime"] == [{"scale": 0, "offset": 0}, {"scale": 0, "offset": 0}]

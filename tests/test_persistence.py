"""
Persistence Tests
=================
JSON store and the PersistenceService file handling.
"""

import json
import os
import stat

import pytest

from infrastructure.storage import StoreError, load_json, save_json
from plantstation.domain.exceptions import ConfigurationError
from plantstation.domain.station import Calibration


class TestJsonStore:
    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / "nested" / "doc.json")
        save_json(path, {"a": [1, 2]})
        assert load_json(path) == {"a": [1, 2]}

    def test_file_mode(self, tmp_path):
        path = str(tmp_path / "doc.json")
        save_json(path, [])
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_leftovers(self, tmp_path):
        path = str(tmp_path / "doc.json")
        save_json(path, [])
        assert sorted(os.listdir(tmp_path)) == ["doc.json"]

    def test_leftovers_of_an_interrupted_save_do_not_block(self, tmp_path):
        path = tmp_path / "doc.json"
        (tmp_path / "doc.json.lock").write_text("")
        (tmp_path / "doc.json.tmp").write_text("{half")

        save_json(str(path), {"ok": True})

        assert load_json(str(path)) == {"ok": True}
        assert not (tmp_path / "doc.json.tmp").exists()

    def test_missing_with_default(self, tmp_path):
        assert load_json(str(tmp_path / "nope.json"), default=[]) == []

    def test_missing_without_default(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_json(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(StoreError):
            load_json(str(path))


class TestPersistenceService:
    def test_missing_files_give_defaults(self, persistence):
        station = persistence.load_station()
        assert station.data.weight == [[], []]
        assert station.config[0].water_hour == 7
        assert station.watertime[1] == Calibration()

    def test_loads_existing_files(self, persistence, app_config):
        with open(app_config.plant_config_file, "w", encoding="utf-8") as fh:
            json.dump([{"hour": 6}, {"hour": 8, "low": 1200}], fh)
        with open(app_config.watertime_file, "w", encoding="utf-8") as fh:
            json.dump([{"scale": 10, "offset": 500}, {"scale": 0, "offset": 0}], fh)
        with open(app_config.data_file, "w", encoding="utf-8") as fh:
            json.dump({"data": {"weight": [[1300], [1400]], "time": 7}, "mindata": {}}, fh)

        station = persistence.load_station()

        assert station.config[0].water_hour == 6
        assert station.config[1].low_level == 1200
        assert station.watertime[0] == Calibration(10, 500)
        assert station.data.weight == [[1300], [1400]]
        assert station.data.time == 7

    def test_corrupt_file_is_configuration_error(self, persistence, app_config):
        with open(app_config.data_file, "w", encoding="utf-8") as fh:
            fh.write("garbage")
        with pytest.raises(ConfigurationError):
            persistence.load_station()

    def test_non_integer_config_value_is_configuration_error(self, persistence, app_config):
        with open(app_config.plant_config_file, "w", encoding="utf-8") as fh:
            json.dump([{"hour": "seven"}, {}], fh)
        with pytest.raises(ConfigurationError):
            persistence.load_station()

    def test_wrong_document_type(self, persistence, app_config):
        with open(app_config.plant_config_file, "w", encoding="utf-8") as fh:
            json.dump({"hour": 7}, fh)
        with pytest.raises(ConfigurationError):
            persistence.load_station()

    def test_save_configs(self, persistence, app_config):
        persistence.save_configs([{"hour": 5}, {"hour": 6}])
        with open(app_config.plant_config_file, encoding="utf-8") as fh:
            assert json.load(fh) == [{"hour": 5}, {"hour": 6}]

    def test_snapshot_under_exclusive_lock(self, station_service, persistence, app_config):
        station_service.save_snapshot(exclusive=True)

        with open(app_config.data_file, encoding="utf-8") as fh:
            assert set(json.load(fh)) == {"data", "mindata"}
        with open(app_config.watertime_file, encoding="utf-8") as fh:
            assert json.load(fh) == [{"scale": 0, "offset": 0}, {"scale": 0, "offset": 0}]

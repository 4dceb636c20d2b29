"""
Response Envelope Tests
=======================
"""

import pytest
from flask import Flask

from plantstation.domain.exceptions import (
    PersistenceError,
    PublishError,
    SensorFaultError,
    ValidationError,
)
from plantstation.utils.http import error_response, safe_route, success_response


@pytest.fixture()
def flask_app():
    return Flask(__name__)


def _route_raising(exc):
    @safe_route("Failed to read weights")
    def view():
        raise exc

    return view


def test_success_envelope(flask_app):
    with flask_app.app_context():
        body = success_response({"weights": [1, 2]}, message="done").get_json()
    assert body == {"ok": True, "data": {"weights": [1, 2]}, "error": None, "message": "done"}


def test_error_details_merge_into_error(flask_app):
    with flask_app.app_context():
        response = error_response("Invalid config", 400, details={"errors": []})
    body = response.get_json()
    assert response.status_code == 400
    assert body["ok"] is False
    assert body["error"]["message"] == "Invalid config"
    assert body["error"]["errors"] == []
    assert "timestamp" in body["error"]


@pytest.mark.parametrize(
    "exc, status, message",
    [
        (SensorFaultError("failed to measure weight #2"), 503, "failed to measure weight #2"),
        (ValidationError("invalid parameter t"), 400, "invalid parameter t"),
        (PersistenceError("/var/opt/plantstation/plant.conf: cannot write"), 500, "Internal error"),
        (PublishError("broker down"), 502, "Message bus unavailable"),
        (KeyError("boom"), 500, "Internal error"),
    ],
)
def test_safe_route_maps_exceptions(flask_app, exc, status, message):
    with flask_app.app_context():
        response = _route_raising(exc)()
    assert response.status_code == status
    assert response.get_json()["error"]["message"] == message

"""
Station API Blueprint
=====================

Endpoints used by the bundled web UI and by scripts.

Endpoints:
- GET /data - Full station state (history, config, calibration)
- GET /config?i= - Plant config (basic auth)
- PUT /config?i= - Update plant config (basic auth)
- GET /water?i=&t= - Water for t ms, or last watering time without t (basic auth)
- GET /weight - Live weights of both plants
- GET /limit?i= - Live water limit measurement
- GET /ht - Live humidity and temperature
- GET /calc?i= - Calibration preview (not stored)
- GET /echo?d=..&d=.. - Echo bytes through the watering controller
- GET /health - Scheduler and MQTT status

The same routes are also registered under /api/v1.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, request
from pydantic import ValidationError

from plantstation.blueprints.api._common import (
    get_container,
    get_int_arg,
    get_json,
    get_plant_index,
    get_station_service,
)
from plantstation.schemas import PlantConfigUpdate
from plantstation.security.basic_auth import basic_auth_required
from plantstation.utils.http import error_response, safe_route, success_response

logger = logging.getLogger(__name__)

station_api = Blueprint("station_api", __name__)


# ==================== State ====================


@station_api.get("/data")
@safe_route("Failed to get station data")
def get_data() -> Response:
    return success_response(get_station_service().to_dict())


@station_api.get("/config")
@basic_auth_required
@safe_route("Failed to get plant config")
def get_config() -> Response:
    index = get_plant_index()
    return success_response(get_station_service().get_config(index))


@station_api.put("/config")
@basic_auth_required
@safe_route("Failed to update plant config")
def update_config() -> Response:
    """
    Update the config of one plant.

    Request body (all fields optional):
    - hour: int (0-23)
    - start: int (ms)
    - max: int (ms)
    - low: int
    - dst: int
    - range: int
    """
    index = get_plant_index()
    raw = get_json()

    try:
        body = PlantConfigUpdate(**raw)
    except ValidationError as ve:
        errors = [{"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]} for e in ve.errors()]
        return error_response("Invalid config", 400, details={"errors": errors})

    config = get_station_service().update_config(index, body.changes())
    return success_response(config, message="Configuration updated")


# ==================== Watering ====================


@station_api.get("/water")
@basic_auth_required
@safe_route("Failed to water plant")
def water() -> Response:
    """Water plant ``i`` for ``t`` ms, or report its last watering time when ``t`` is absent."""
    index = get_plant_index()
    duration = get_int_arg("t")
    service = get_station_service()

    if duration is None:
        return success_response({"index": index, "last_watering_ms": service.last_watering(index)})

    applied = service.water(index, duration)
    return success_response({"index": index, "requested_ms": duration, "applied_ms": applied})


@station_api.get("/calc")
@safe_route("Failed to calculate watering model")
def calculate() -> Response:
    index = get_plant_index()
    result = get_station_service().calculate_diagnostic(index)
    return success_response({"index": index, **result.to_dict()})


# ==================== Live readings ====================


@station_api.get("/weight")
@safe_route("Failed to read weights")
def read_weights() -> Response:
    weights = get_station_service().read_weights()
    return success_response({"weights": list(weights)})


@station_api.get("/limit")
@safe_route("Failed to read watering limit")
def read_limit() -> Response:
    index = get_plant_index()
    return success_response({"index": index, "limit": get_station_service().watering_limit(index)})


@station_api.get("/ht")
@safe_route("Failed to read humidity and temperature")
def read_ambient() -> Response:
    temperature, humidity = get_station_service().read_ambient()
    return success_response({"humidity": humidity, "temperature": temperature})


@station_api.get("/echo")
@safe_route("Echo failed")
def echo() -> Response:
    values = []
    for raw in request.args.getlist("d"):
        try:
            values.append(int(raw))
        except ValueError:
            return error_response(f"invalid parameter {raw!r}", 400)
    received = get_station_service().echo(values)
    return success_response({"sent": values, "received": received})


@station_api.get("/health")
@safe_route("Failed to get health status")
def health() -> Response:
    container = get_container()
    return success_response(
        {
            "scheduler_running": container.scheduler.is_running(),
            "next_hour": container.scheduler.next_hour.isoformat() if container.scheduler.next_hour else None,
            "mqtt": container.station_service.publisher_status(),
        }
    )

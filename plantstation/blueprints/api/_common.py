"""
Blueprint Common Utilities
==========================

Shared helper functions for the API blueprints.

Usage:
    from plantstation.blueprints.api._common import get_container, get_station_service, get_plant_index
"""
from __future__ import annotations

import logging

from flask import current_app, request

from plantstation.domain.exceptions import ValidationError

logger = logging.getLogger("api._common")

# ============================================================================
# CONTAINER ACCESS
# ============================================================================


def get_container():
    """
    Get the service container from Flask app config.

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_station_service():
    return get_container().station_service


# ============================================================================
# REQUEST HELPERS
# ============================================================================


def get_plant_index() -> int:
    """Plant selected by the ``i`` query parameter; anything but ``1`` selects plant 0."""
    return 1 if request.args.get("i") == "1" else 0


def get_int_arg(name: str) -> int | None:
    """Optional integer query parameter.

    Raises:
        ValidationError: parameter present but not an integer
    """
    raw = request.args.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"invalid parameter {name}: {raw!r}") from None


def get_json() -> dict:
    """
    Get the JSON object request body.

    Raises:
        ValidationError: body missing or not a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data

"""Centralized exception hierarchy for PlantStation.

All domain and service exceptions inherit from :class:`PlantStationError` so
that callers can catch a single base class when they need a broad safety net,
yet still match on specific subclasses where narrower handling is appropriate.

Blueprint-level error handling (see ``plantstation/utils/http.safe_route``)
maps these to the correct HTTP status codes automatically.

Hierarchy
---------
::

    PlantStationError (base, maps to 500)
    ├── ValidationError          (400, bad input from caller)
    ├── NotFoundError            (404, entity does not exist)
    ├── ConfigurationError       (500, missing / unreadable / invalid config)
    ├── PersistenceError         (500, snapshot or config file write failed)
    ├── PublishError             (502, message bus publish failed)
    └── DeviceError              (503, hardware communication)
        ├── BusError             (503, I2C transport failure)
        └── SensorFaultError     (503, device reported the 0xFF fault sentinel)
"""

from __future__ import annotations


class PlantStationError(Exception):
    """Base exception for all PlantStation errors.

    Parameters
    ----------
    message:
        Human-readable description (logged server-side, **not** leaked to
        the HTTP client unless the exception class opts in).
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(PlantStationError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400


class NotFoundError(PlantStationError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404


# ── Server errors (5xx) ──────────────────────────────────────────────


class ConfigurationError(PlantStationError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500


class PersistenceError(PlantStationError):
    """Snapshot or config file could not be written (HTTP 500)."""

    http_status: int = 500


class PublishError(PlantStationError):
    """Message bus publish failed or timed out (HTTP 502)."""

    http_status: int = 502


class DeviceError(PlantStationError):
    """Hardware communication or device-protocol failure (HTTP 503)."""

    http_status: int = 503


class BusError(DeviceError):
    """Transport-level failure talking to a device on the I2C bus."""


class SensorFaultError(DeviceError):
    """The device answered, but with its measurement-failed sentinel."""

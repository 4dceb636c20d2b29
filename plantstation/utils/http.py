"""
JSON responses for the station API.

Every route answers with the same envelope::

    {"ok": true,  "data": {...}, "error": null}
    {"ok": false, "data": null,  "error": {"message": "...", "timestamp": "..."}}

so the web UI can check ``ok`` before looking at ``data``.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import Response, jsonify

from plantstation.domain.exceptions import DeviceError, PlantStationError
from plantstation.utils.time import iso_now

logger = logging.getLogger(__name__)

# Server-side failures get a fixed message; the exception text stays in the log
_SERVER_ERROR_MESSAGES = {
    502: "Message bus unavailable",
    503: "Device unavailable",
}
_DEFAULT_SERVER_ERROR = "Internal error"


def _envelope(ok: bool, data: Any, error: dict[str, Any] | None, status: int, **extra: Any) -> Response:
    response = jsonify({"ok": ok, "data": data, "error": error, **extra})
    response.status_code = status
    return response


def success_response(data: Any = None, status: int = 200, *, message: str | None = None) -> Response:
    extra = {"message": message} if message is not None else {}
    return _envelope(True, data, None, status, **extra)


def error_response(message: str, status: int = 500, *, details: dict | None = None) -> Response:
    """Error envelope; ``details`` are merged into the ``error`` object."""
    error: dict[str, Any] = {"message": message, "timestamp": iso_now()}
    if details:
        error.update(details)
    return _envelope(False, None, error, status)


def server_error(exc: BaseException, status: int = 500, *, context: str = "") -> Response:
    """Log ``exc`` with its traceback and answer with a fixed message for ``status``."""
    logger.error("API error [%s] %s: %s", status, context, exc, exc_info=exc)
    return error_response(_SERVER_ERROR_MESSAGES.get(status, _DEFAULT_SERVER_ERROR), status)


def exception_response(exc: Exception, context: str) -> Response:
    """Map an exception raised while handling a request to an error envelope.

    Device faults are expected on a flaky bus and keep their message (it
    names the failing sensor); other 5xx errors are logged and hidden.
    """
    if isinstance(exc, DeviceError):
        logger.warning("%s: %s", context, exc)
        return error_response(str(exc) or context, exc.http_status)
    if isinstance(exc, PlantStationError):
        if exc.http_status >= 500:
            return server_error(exc, exc.http_status, context=context)
        return error_response(str(exc) or context, exc.http_status, details=exc.detail or None)
    return server_error(exc, 500, context=context)


def safe_route(error_message: str) -> Callable:
    """Turn exceptions escaping a route into error envelopes.

    Usage::

        @station_api.get("/weight")
        @safe_route("Failed to read weights")
        def read_weights():
            ...
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                return exception_response(exc, error_message)

        return wrapper

    return decorator

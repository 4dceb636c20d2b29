from __future__ import annotations

import atexit
import contextlib
import logging
import os
import signal
import threading
from typing import TYPE_CHECKING

from flask import Flask, request, send_from_directory
from werkzeug.exceptions import HTTPException

from plantstation.blueprints.api.station import station_api
from plantstation.config import AppConfig, load_config, setup_logging
from plantstation.domain.exceptions import PersistenceError
from plantstation.utils.http import error_response, exception_response, server_error

if TYPE_CHECKING:
    from plantstation.services.container import ServiceContainer

__version__ = "1.0.0"

API_V1 = "/api/v1"


def _install_signal_handlers(container: ServiceContainer) -> None:
    """SIGINT/SIGTERM: final snapshot and exit. SIGUSR1: snapshot without stopping."""
    shutdown_lock = threading.Lock()
    shutdown_done = False

    def _graceful_shutdown(reason: str = "unknown") -> None:
        nonlocal shutdown_done
        with shutdown_lock:
            if shutdown_done:
                return
            shutdown_done = True
        logging.info("Graceful shutdown initiated (%s)", reason)
        container.shutdown()

    def _signal_handler(signum: int, _frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logging.info("Received %s, shutting down", sig_name)
        _graceful_shutdown(sig_name)
        raise SystemExit(0)

    def _save_snapshot() -> None:
        try:
            container.station_service.save_snapshot()
        except PersistenceError as e:
            logging.error("Snapshot on request failed: %s", e)

    def _snapshot_handler(_signum: int, _frame: object) -> None:
        logging.info("Received SIGUSR1, saving snapshot")
        threading.Thread(target=_save_snapshot, daemon=True, name="SnapshotSave").start()

    atexit.register(_graceful_shutdown, "atexit")

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(OSError, ValueError):
            signal.signal(sig, _signal_handler)

    # SIGUSR1 does not exist on Windows
    if hasattr(signal, "SIGUSR1"):
        with contextlib.suppress(OSError, ValueError):
            signal.signal(signal.SIGUSR1, _snapshot_handler)


def create_app(
    config: AppConfig | None = None,
    *,
    container: ServiceContainer | None = None,
    install_signal_handlers: bool = False,
) -> Flask:
    """Build the Flask app around a service container.

    Args:
        config: Runtime configuration; loaded from the environment when omitted.
        container: Prebuilt container (tests); built from ``config`` when omitted.
        install_signal_handlers: Register SIGINT/SIGTERM/SIGUSR1 handlers
            (server process only).

    Raises:
        ConfigurationError: invalid settings or unreadable state files.
        DeviceError: the I2C devices cannot be opened.
    """
    if config is None:
        config = container.config if container is not None else load_config()

    setup_logging(debug=config.DEBUG, level=config.log_level)

    web_dir = os.path.abspath(config.web_dir) if config.web_dir else None
    if web_dir and not os.path.isdir(web_dir):
        logging.warning("Web UI directory %s not found, serving the API only", web_dir)
        web_dir = None

    flask_app = Flask(__name__, static_folder=web_dir, static_url_path="")
    flask_app.config.update(config.as_flask_config())

    if container is None:
        from plantstation.services.container import ServiceContainer

        container = ServiceContainer.build(config)
    flask_app.config["CONTAINER"] = container

    if install_signal_handlers:
        _install_signal_handlers(container)

    # Global JSON error handler for anything a route did not handle itself
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return server_error(exc, status, context=request.path)
            return error_response(exc.description or "Request failed", status)
        return exception_response(exc, f"unhandled {request.path}")

    # Flat paths for the bundled web UI, versioned paths for scripts
    flask_app.register_blueprint(station_api)
    flask_app.register_blueprint(station_api, url_prefix=API_V1, name="station_api_v1")

    if web_dir:

        @flask_app.get("/")
        def _index():
            return send_from_directory(web_dir, "index.html")

    return flask_app

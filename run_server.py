"""PlantStation server: update cycles in the background, HTTP API in the foreground."""

from __future__ import annotations

import argparse
import logging
import sys

from plantstation import create_app
from plantstation.config import load_config
from plantstation.domain.exceptions import ConfigurationError, DeviceError

logger = logging.getLogger("plantstation.server")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PlantStation irrigation controller")
    parser.add_argument("--host", help="HTTP bind address (default: PLANTSTATION_HOST)")
    parser.add_argument("--port", type=int, help="HTTP port (default: PLANTSTATION_PORT)")
    parser.add_argument("--no-scheduler", action="store_true", help="Serve the API without update cycles")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        config = load_config()
        if args.host:
            config.host = args.host
        if args.port is not None:
            config.port = args.port
        if args.no_scheduler:
            config.enable_scheduler = False
        if args.debug:
            config.DEBUG = True

        app = create_app(config, install_signal_handlers=True)
    except (ConfigurationError, DeviceError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.critical("Startup failed: %s", e)
        return 1

    container = app.config["CONTAINER"]
    container.start()

    logger.info("Server starting on http://%s:%s", config.host, config.port)
    try:
        app.run(host=config.host, port=config.port, debug=False, use_reloader=False, threaded=True)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    finally:
        container.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
OctoPrint-to-MKS bridge - Flask Application Entry Point.

Lets OctoPrint-compatible slicers upload (and start) G-code on a printer
running MKS firmware. This is a slim app factory that:
1. Loads configuration (.env, environment)
2. Resolves the printer address (fail-fast if missing or invalid)
3. Builds the MKS client and relay service for that address
4. Registers route blueprints and request logging

ARCHITECTURE:
    Main Thread
    ├── Configuration and device address (read-only after startup)
    └── Flask threaded server

    Request Threads (one per incoming request)
    └── extract -> HTTP upload -> (wait -> M23/M24 over TCP)

The device address is the only state shared between requests and it
never changes after create_app() returns.

Usage:
    python app.py 192.168.1.50
    LISTEN=127.0.0.1:5000 python app.py 192.168.1.50:80
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from dotenv import load_dotenv
from flask import Flask, request

from logging_config import setup_logging, get_logger
from core.exceptions import ConfigurationError
from core.mks_client import MKSClient
from models.device import DeviceAddress
from services.relay_service import RelayService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a PyInstaller bundle: the directory containing the executable.
    In development: the directory containing app.py.
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def parse_listen_address(value: str) -> Tuple[str, int]:
    """
    Split a LISTEN value ("host:port") into host and port.

    Raises:
        ConfigurationError: If the port is missing or not a number
    """
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigurationError(f"invalid listen address: {value}", value)
    return host.strip("[]") or "0.0.0.0", int(port)


def create_app(
    device_host: Optional[str] = None,
    config_object: str = "config.Config",
    config_overrides: Optional[Dict[str, Any]] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: without a valid printer address the app will not start.

    Args:
        device_host: Printer address (host or host:port); falls back to MKS_HOST
        config_object: Import path of the configuration class
        config_overrides: Extra config values applied last (tests)

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If no valid printer address is available
    """
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)
    if config_overrides:
        app.config.update(config_overrides)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    log_file = app.config.get("LOG_FILE")

    root_logger = setup_logging(
        log_level=log_level,
        log_file=Path(log_file) if log_file else None,
        max_bytes=app.config["LOG_MAX_BYTES"],
        backup_count=app.config["LOG_BACKUP_COUNT"],
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    # =========================================================================
    # DEVICE (FAIL-FAST)
    # =========================================================================

    try:
        device = DeviceAddress.parse(
            device_host or app.config.get("MKS_HOST", ""),
            command_port=app.config["MKS_COMMAND_PORT"],
        )
    except ConfigurationError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    app.config["DEVICE_ADDRESS"] = device

    client = MKSClient(
        device,
        upload_timeout=app.config["MKS_UPLOAD_TIMEOUT"],
        strict_status=app.config["MKS_STRICT_UPLOAD_STATUS"],
        connect_timeout=app.config["MKS_CONNECT_TIMEOUT"],
        read_timeout=app.config["MKS_READ_TIMEOUT"],
        response_max_bytes=app.config["MKS_RESPONSE_MAX_BYTES"],
        response_idle_timeout=app.config["MKS_RESPONSE_IDLE_TIMEOUT"],
        logger=get_logger("core.mks_client"),
    )
    app.config["RELAY_SERVICE"] = RelayService(
        client,
        start_delay_seconds=app.config["MKS_START_DELAY_SECONDS"],
    )

    # =========================================================================
    # ROUTES
    # =========================================================================

    register_blueprints(app)

    @app.before_request
    def log_incoming_request():
        logger.info(f"Incoming request {request.method} {request.full_path.rstrip('?')}")

    logger.info(f"Bridge initialized for MKS printer at {device}")
    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Command-line entry point.

    Args:
        argv: Arguments without the program name (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(
        description="Expose an OctoPrint-compatible upload API for an MKS printer",
        epilog="Example: octo-mks-bridge 192.168.1.50",
    )
    parser.add_argument("printer", help="MKS printer IP or host[:port]")
    args = parser.parse_args(argv)

    try:
        app = create_app(device_host=args.printer)
        host, port = parse_listen_address(app.config["LISTEN"])
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logger.info(f"Running on address: {host}:{port}")
    app.run(host=host, port=port, debug=app.config.get("DEBUG"), threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())

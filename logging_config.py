"""
Centralized logging configuration for the OctoPrint-to-MKS bridge.

Every incoming upload is handled on its own server thread, and one upload
may block for minutes on the printer. Thread names in every log line make
it possible to follow a single upload through interleaved output.

Features:
    - Automatic thread name in all log messages
    - Console output to stdout (always enabled)
    - One rotating log file (optional, production default)
    - Per-upload "[id]" prefix for relay messages

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] octo_mks_bridge.app - Running on address: 0.0.0.0:10080
    2026-10-19 10:15:31 [INFO    ] [Thread-3] octo_mks_bridge.services.upload_extractor - Received gcode file: ...
    2026-10-19 10:15:33 [INFO    ] [Thread-3] octo_mks_bridge.relay - [1f0c2a9b] Response from MKS [200]: ok

Usage:
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, log_file=Path("logs/octo_mks_bridge.log"))

    logger = get_logger(__name__)
    relay_logger = get_request_logger("1f0c2a9b-...")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "octo_mks_bridge"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """Stamps ``thread_name`` on every record; request threads are named by the server."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _prepare(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(ThreadContextFilter())
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_file: Optional[Path] = None,
    max_bytes: int = 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the bridge logger.

    Console output always goes to stdout, where a service manager picks it
    up. Small print-server hosts usually have little disk, so the optional
    file log is a single rotating file holding every level.

    Args:
        app_name: Name of the application logger (default: "octo_mks_bridge")
        log_level: Minimum log level (default: INFO)
        log_file: Rotating log file, None for console only
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept next to the log file

    Returns:
        Configured application logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Each create_app() call reconfigures from scratch
    logger.handlers.clear()

    logger.addHandler(_prepare(logging.StreamHandler(sys.stdout), log_level))

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        logger.addHandler(_prepare(file_handler, log_level))
        logger.info(f"Logging to {log_file}")

    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger named "octo_mks_bridge.<name>"

    Example:
        logger = get_logger("services.relay_service")
        # Logger name: "octo_mks_bridge.services.relay_service"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the short request id."""

    def process(self, msg, kwargs):
        return f"[{self.extra['request_id']}] {msg}", kwargs


def get_request_logger(request_id: str) -> logging.LoggerAdapter:
    """
    Get a logger for one relayed upload.

    Only the first 8 characters of the request id are used, which is
    enough to tell concurrent uploads apart when grepping. All uploads
    share the "octo_mks_bridge.relay" logger, so nothing accumulates per
    request in a long-running server.

    Args:
        request_id: UUID of the relay request

    Returns:
        Adapter writing "[<short id>] message" to "octo_mks_bridge.relay"

    Example:
        relay_logger = get_request_logger("1f0c2a9b-...")
        relay_logger.info("Uploading")
        # Output: ... octo_mks_bridge.relay - [1f0c2a9b] Uploading
    """
    short_id = request_id[:8] if len(request_id) >= 8 else request_id
    return RequestLoggerAdapter(
        logging.getLogger(f"{APP_LOGGER_NAME}.relay"),
        {"request_id": short_id},
    )

"""
Configuration for the OctoPrint-to-MKS bridge.

Values come from the environment; a .env file next to this module is
loaded first. The printer address itself is normally the single
command-line argument, MKS_HOST is only a fallback.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env early so the Config class below sees its values
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(name, default))


def _env_optional_float(name: str):
    value = os.environ.get(name, "").strip()
    return float(value) if value else None


class Config:
    """Default configuration for the Flask application."""

    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "0") == "1"
    TESTING = False

    # Inbound listen address (host:port)
    LISTEN = os.environ.get("LISTEN", "0.0.0.0:10080")

    # Rotating log file, empty for console only (production sets a default)
    LOG_FILE = os.environ.get("LOG_FILE", "")
    LOG_MAX_BYTES = int(os.environ.get("LOG_MAX_BYTES", str(1024 * 1024)))
    LOG_BACKUP_COUNT = int(os.environ.get("LOG_BACKUP_COUNT", "3"))

    # ==========================================================================
    # Upload limits
    # ==========================================================================
    # UPLOAD_CEILING_BYTES: largest G-code file accepted (32 MiB).
    # MAX_CONTENT_LENGTH: whole request body, the ceiling plus room for the
    #   multipart boundaries, headers and the "print" field. Werkzeug spools
    #   file parts to disk, so memory use stays bounded.
    # ==========================================================================
    UPLOAD_CEILING_BYTES = 32 * 1024 * 1024
    MAX_CONTENT_LENGTH = UPLOAD_CEILING_BYTES + 64 * 1024

    # ==========================================================================
    # MKS device
    # ==========================================================================
    MKS_HOST = os.environ.get("MKS_HOST", "")
    MKS_COMMAND_PORT = int(os.environ.get("MKS_COMMAND_PORT", "8080"))

    # HTTP upload: seconds before the POST to the device is abandoned
    MKS_UPLOAD_TIMEOUT = _env_float("MKS_UPLOAD_TIMEOUT", "300")

    # "1" fails uploads the device answers with a non-2xx status.
    # Default accepts any readable response, like the stock MKS tools.
    MKS_STRICT_UPLOAD_STATUS = os.environ.get("MKS_STRICT_UPLOAD_STATUS", "0") == "1"

    # Print start: the device gives no "file stored" signal, so wait
    MKS_START_DELAY_SECONDS = _env_float("MKS_START_DELAY_SECONDS", "3")

    MKS_CONNECT_TIMEOUT = _env_optional_float("MKS_CONNECT_TIMEOUT") or 10.0
    MKS_READ_TIMEOUT = _env_optional_float("MKS_READ_TIMEOUT")

    # Response capture: first chunk only unless an idle timeout is set
    MKS_RESPONSE_MAX_BYTES = int(os.environ.get("MKS_RESPONSE_MAX_BYTES", "1024"))
    MKS_RESPONSE_IDLE_TIMEOUT = _env_float("MKS_RESPONSE_IDLE_TIMEOUT", "0")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    ENVIRONMENT = "production"
    LOG_FILE = os.environ.get("LOG_FILE", str(BASE_DIR / "logs" / "octo_mks_bridge.log"))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    MKS_START_DELAY_SECONDS = 0.0
    MKS_CONNECT_TIMEOUT = 2.0
    MKS_READ_TIMEOUT = 5.0

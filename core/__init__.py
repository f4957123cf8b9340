"""
Core module for the OctoPrint-to-MKS bridge.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- mks_client: HTTP upload and TCP command client for the MKS controller
  (import it directly: ``from core.mks_client import MKSClient``)
"""

from .exceptions import (
    BridgeError,
    ConfigurationError,
    UploadExtractionError,
    MultipartParseFailed,
    MissingFile,
    AmbiguousFileCount,
    UploadFailed,
    PrintStartError,
    DeviceUnreachable,
    ResponseUnreadable,
)

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "UploadExtractionError",
    "MultipartParseFailed",
    "MissingFile",
    "AmbiguousFileCount",
    "UploadFailed",
    "PrintStartError",
    "DeviceUnreachable",
    "ResponseUnreadable",
]

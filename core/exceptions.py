"""
Custom exceptions for the OctoPrint-to-MKS bridge.

Exception Hierarchy:
    BridgeError (base)
    ├── ConfigurationError         - Bad or missing device address (startup failure)
    ├── UploadExtractionError      - Incoming OctoPrint upload rejected (400)
    │   ├── MultipartParseFailed   - Body is not usable multipart form data
    │   ├── MissingFile            - No "file" part
    │   └── AmbiguousFileCount     - More than one "file" part
    ├── UploadFailed               - Device HTTP upload failed (400)
    └── PrintStartError            - Print-start sequence failed (500)
        ├── DeviceUnreachable      - TCP command port could not be used
        └── ResponseUnreadable     - No response could be read back

Usage:
    Startup errors (ConfigurationError) cause the app to fail fast.
    Request errors are caught at the route and mapped to ``http_status``.
    The caller only ever sees the status code, never the details.
"""

from typing import Optional, Dict, Any


class BridgeError(Exception):
    """
    Base exception for all bridge errors.

    Attributes:
        kind: Short name of the failure, used in logs and relay results
        http_status: Status code returned to the OctoPrint client
    """

    kind = "BridgeError"
    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ConfigurationError(BridgeError):
    """
    The device address is missing or cannot be parsed.

    This is a FATAL error - without a device there is nothing to relay to.
    """

    kind = "ConfigurationError"

    def __init__(self, message: str, value: Optional[str] = None):
        details = {"resolution": "Pass the printer address as the only argument, e.g. 192.168.1.50"}
        if value is not None:
            details["value"] = value
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS - The OctoPrint request itself is unusable (400)
# =============================================================================

class UploadExtractionError(BridgeError):
    """Base class for failures while reading the incoming OctoPrint upload."""

    kind = "UploadExtractionError"
    http_status = 400


class MultipartParseFailed(UploadExtractionError):
    """
    The request body could not be decoded as multipart form data.

    Covers a wrong content type, a malformed body and bodies above the
    upload ceiling.
    """

    kind = "MultipartParseFailed"

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"failed to parse multipart message: {reason}", details)
        self.reason = reason


class MissingFile(UploadExtractionError):
    """The request carried no "file" part."""

    kind = "MissingFile"

    def __init__(self, field: str = "file"):
        super().__init__("can't find gcode file in request", {"field": field})
        self.field = field


class AmbiguousFileCount(UploadExtractionError):
    """The request carried more than one "file" part."""

    kind = "AmbiguousFileCount"

    def __init__(self, count: int, field: str = "file"):
        super().__init__(
            f"wrong gcode files count in request: {count}",
            {"field": field, "count": count},
        )
        self.count = count
        self.field = field


# =============================================================================
# RELAY ERRORS - The device could not be driven
# =============================================================================

class UploadFailed(BridgeError):
    """
    Uploading the file to the device failed.

    Raised for network errors, timeouts, unreadable response bodies and,
    under the strict status policy, non-2xx responses. The file may or may
    not have reached the device.
    """

    kind = "UploadFailed"
    http_status = 400

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class PrintStartError(BridgeError):
    """
    Base class for failures of the M23/M24 print-start sequence.

    When this is raised the file is already on the device - only the
    start failed.
    """

    kind = "PrintStartError"
    http_status = 500

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        port: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if host:
            error_details["host"] = host
        if port is not None:
            error_details["port"] = port
        super().__init__(message, error_details)
        self.host = host
        self.port = port


class DeviceUnreachable(PrintStartError):
    """The device's command port refused, timed out or dropped the connection."""

    kind = "DeviceUnreachable"


class ResponseUnreadable(PrintStartError):
    """
    Nothing could be read back after sending the commands.

    An immediate close by the device (EOF before any data) counts as
    unreadable too.
    """

    kind = "ResponseUnreadable"

"""
Device address model.

The bridge talks to exactly one MKS controller, addressed by a host
(optionally with an HTTP port). Two endpoints are derived from it:

    HTTP upload:   http://<host[:port]>/upload?X-Filename=<filename>
    TCP commands:  <host>:<command_port>

Both endpoints always share the same host - only transport and port differ.

Thread Safety:
    DeviceAddress is frozen and built once in create_app(), so it is safe to
    share between request threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import quote, urlsplit

from core.exceptions import ConfigurationError


DEFAULT_COMMAND_PORT = 8080
UPLOAD_PATH = "/upload"
FILENAME_QUERY_PARAM = "X-Filename"


@dataclass(frozen=True)
class DeviceAddress:
    """Immutable address of the MKS controller."""

    host: str
    """Hostname or IP address (IPv6 without brackets)."""

    http_port: Optional[int] = None
    """Port of the upload endpoint, None for the default HTTP port."""

    command_port: int = DEFAULT_COMMAND_PORT
    """Port of the line-oriented command protocol."""

    @classmethod
    def parse(cls, value: str, command_port: int = DEFAULT_COMMAND_PORT) -> "DeviceAddress":
        """
        Build an address from ``host`` or ``host:port``.

        Args:
            value: Printer address as given on the command line
            command_port: TCP port for M-code commands

        Returns:
            DeviceAddress

        Raises:
            ConfigurationError: If value is empty or not a valid host[:port]
        """
        value = (value or "").strip()
        if not value:
            raise ConfigurationError("printer address is required")
        if "/" in value or "@" in value:
            raise ConfigurationError(f"invalid printer address: {value}", value)

        parts = urlsplit(f"//{value}")
        try:
            http_port = parts.port
        except ValueError:
            raise ConfigurationError(f"invalid port in printer address: {value}", value)

        host = parts.hostname
        if not host:
            raise ConfigurationError(f"invalid printer address: {value}", value)

        return cls(host=host, http_port=http_port, command_port=command_port)

    @property
    def netloc(self) -> str:
        """Host (bracketed if IPv6) with the HTTP port when one is set."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.http_port is not None:
            return f"{host}:{self.http_port}"
        return host

    def upload_url(self, filename: str) -> str:
        """URL of the device upload endpoint for ``filename`` (percent-encoded)."""
        return f"http://{self.netloc}{UPLOAD_PATH}?{FILENAME_QUERY_PARAM}={quote(filename, safe='')}"

    @property
    def command_endpoint(self) -> Tuple[str, int]:
        """(host, port) of the TCP command protocol."""
        return (self.host, self.command_port)

    def __str__(self) -> str:
        return self.netloc

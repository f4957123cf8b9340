"""
MKS printer controller client.

This module speaks the two protocols of an MKS-firmware controller:

    HTTP upload:   POST http://<host>/upload?X-Filename=<filename>
                   multipart body, file field "uploadfile"
    TCP commands:  <host>:8080, CRLF-terminated M-codes, free-text replies

THREAD SAFETY:
    - An MKSClient holds only immutable configuration
    - Every upload uses its own requests.Session
    - Every print start opens, uses and closes its own socket
    Request threads can therefore share one MKSClient instance.

Usage:
    client = MKSClient(DeviceAddress.parse("192.168.1.50"))

    # Forward the file (blocks up to upload_timeout seconds)
    client.upload_file(upload)

    # Select the file and start printing
    result = client.start_job(upload.filename)
    print(result.response)
"""

from __future__ import annotations

import logging
import socket
import time
from typing import Optional, Union

import requests

from models.device import DeviceAddress
from models.relay_result import JobStartResult
from models.upload import UploadRequest
from .exceptions import DeviceUnreachable, ResponseUnreadable, UploadFailed


# Field name the MKS web upload handler reads the file from
UPLOAD_FIELD = "uploadfile"

# Content type of the outer POST; the multipart boundary travels in the body only
OUTER_CONTENT_TYPE = "application/octet-stream"
PART_CONTENT_TYPE = "application/octet-stream"

DEFAULT_UPLOAD_TIMEOUT = 300.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_RESPONSE_MAX_BYTES = 1024

# Upload replies are read byte-wise; the deadline is checked between reads
UPLOAD_REPLY_CHUNK_BYTES = 1

COMMAND_TERMINATOR = "\r\n"

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def select_file_command(filename: str) -> bytes:
    """M23: select ``filename`` on the device storage."""
    return f"M23 {filename}{COMMAND_TERMINATOR}".encode("utf-8")


def start_print_command() -> bytes:
    """M24: start (or resume) printing the selected file."""
    return f"M24{COMMAND_TERMINATOR}".encode("utf-8")


class MKSClient:
    """
    Client for one MKS controller.

    Attributes:
        device: Address of the controller
        strict_status: Whether non-2xx upload responses count as failures
    """

    def __init__(
        self,
        device: DeviceAddress,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        strict_status: bool = False,
        connect_timeout: Optional[float] = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: Optional[float] = None,
        response_max_bytes: int = DEFAULT_RESPONSE_MAX_BYTES,
        response_idle_timeout: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            device: Controller address (shared by both protocols)
            upload_timeout: Seconds before the HTTP upload is abandoned
            strict_status: Treat non-2xx upload responses as UploadFailed.
                When False any readable response is a success.
            connect_timeout: Seconds to wait for the command port to accept
            read_timeout: Seconds to wait for the first response chunk,
                None to block until the device answers or closes
            response_max_bytes: Upper bound on captured response bytes
            response_idle_timeout: When > 0, keep reading after the first
                chunk until the device is quiet for this many seconds.
                0 captures the first chunk only.
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If device is None or response_max_bytes < 1
        """
        if device is None:
            raise ValueError("device is required")
        if response_max_bytes < 1:
            raise ValueError("response_max_bytes must be at least 1")

        self._device = device
        self._upload_timeout = upload_timeout
        self._strict_status = strict_status
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._response_max_bytes = response_max_bytes
        self._response_idle_timeout = response_idle_timeout
        self._logger = logger or logging.getLogger("core.mks_client")

    @property
    def device(self) -> DeviceAddress:
        return self._device

    @property
    def strict_status(self) -> bool:
        return self._strict_status

    # =========================================================================
    # HTTP UPLOAD
    # =========================================================================

    def upload_file(self, upload: UploadRequest, logger: Optional[LoggerLike] = None) -> int:
        """
        Forward an uploaded file to the device.

        The file is re-framed as a new multipart body with the device's
        field name. File bytes are copied unchanged.

        Args:
            upload: Extracted upload (its content stream is consumed)
            logger: Request-scoped logger, defaults to the client logger

        Returns:
            HTTP status code returned by the device

        Raises:
            UploadFailed: On network error, timeout, unreadable response,
                a short read of the source file, or (strict policy only)
                a non-2xx status
        """
        log = logger or self._logger
        url = self._device.upload_url(upload.filename)

        data = upload.content.read()
        if len(data) != upload.size:
            raise UploadFailed(
                f"can't copy from multipart to MKS request: read {len(data)} of {upload.size} bytes",
                url=url,
            )

        request = requests.Request(
            "POST",
            url,
            files={UPLOAD_FIELD: (upload.filename, data, PART_CONTENT_TYPE)},
        )

        log.debug(f"Uploading {upload.describe()} to {url}")

        # Caps the whole exchange; the requests timeout only bounds single reads
        deadline = time.monotonic() + self._upload_timeout

        try:
            with requests.Session() as session:
                prepared = session.prepare_request(request)
                prepared.headers["Content-Type"] = OUTER_CONTENT_TYPE
                response = session.send(prepared, timeout=self._upload_timeout, stream=True)
                with response:
                    body = self._read_upload_reply(response, deadline, url)
        except requests.exceptions.Timeout as e:
            raise UploadFailed(
                f"MKS upload timed out after {self._upload_timeout:.0f}s: {e}", url=url
            )
        except requests.exceptions.RequestException as e:
            raise UploadFailed(f"error on MKS request: {e}", url=url)

        log.info(f"Response from MKS [{response.status_code}]: {body}")

        if self._strict_status and not response.ok:
            raise UploadFailed(
                f"MKS rejected upload with status {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        return response.status_code

    def _read_upload_reply(
        self,
        response: requests.Response,
        deadline: float,
        url: str,
    ) -> str:
        """Read the device's upload reply, giving up once ``deadline`` passes."""
        chunks = []
        if time.monotonic() > deadline:
            raise self._upload_deadline_passed(url)
        for chunk in response.iter_content(chunk_size=UPLOAD_REPLY_CHUNK_BYTES):
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise self._upload_deadline_passed(url)
        return b"".join(chunks).decode("utf-8", errors="replace")

    def _upload_deadline_passed(self, url: str) -> UploadFailed:
        return UploadFailed(
            f"MKS upload timed out after {self._upload_timeout:.0f}s: reply not complete",
            url=url,
        )

    # =========================================================================
    # TCP COMMANDS
    # =========================================================================

    def start_job(self, filename: str, logger: Optional[LoggerLike] = None) -> JobStartResult:
        """
        Select ``filename`` and start printing it.

        Opens one connection to the command port, writes ``M23 <filename>``
        and ``M24`` back to back without waiting in between, then reads the
        device's reply to both.

        Args:
            filename: Name of a file already uploaded to the device
            logger: Request-scoped logger, defaults to the client logger

        Returns:
            JobStartResult with the captured response text

        Raises:
            DeviceUnreachable: If the connection cannot be opened or the
                commands cannot be written
            ResponseUnreadable: If reading fails or the device closes
                before sending anything
        """
        log = logger or self._logger
        host, port = self._device.command_endpoint

        try:
            sock = socket.create_connection((host, port), timeout=self._connect_timeout)
        except OSError as e:
            raise DeviceUnreachable(f"can't connect to MKS: {e}", host=host, port=port)

        with sock:
            sock.settimeout(self._read_timeout)
            log.debug(f"Connected to MKS command port {host}:{port}")

            try:
                sock.sendall(select_file_command(filename))
                sock.sendall(start_print_command())
            except OSError as e:
                raise DeviceUnreachable(
                    f"can't send commands to MKS: {e}", host=host, port=port
                )

            raw = self._read_response(sock, host, port, log)

        return JobStartResult(
            filename=filename,
            response=raw.decode("utf-8", errors="replace"),
            bytes_received=len(raw),
        )

    def _read_response(
        self,
        sock: socket.socket,
        host: str,
        port: int,
        log: LoggerLike,
    ) -> bytes:
        """
        Read the device's reply.

        The first chunk is mandatory. Further chunks are only collected when
        an idle timeout is configured, and stop at the size guard.
        """
        try:
            data = sock.recv(self._response_max_bytes)
        except OSError as e:
            raise ResponseUnreadable(
                f"can't read response from socket: {e}", host=host, port=port
            )
        if not data:
            raise ResponseUnreadable(
                "can't read response from socket: connection closed by device",
                host=host,
                port=port,
            )

        if self._response_idle_timeout <= 0:
            return data

        sock.settimeout(self._response_idle_timeout)
        while len(data) < self._response_max_bytes:
            try:
                chunk = sock.recv(self._response_max_bytes - len(data))
            except socket.timeout:
                break
            except OSError as e:
                log.warning(f"MKS response cut short after {len(data)} bytes: {e}")
                break
            if not chunk:
                break
            data += chunk

        return data

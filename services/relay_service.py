"""
Upload relay service.

Drives one extracted upload through the device, in strict order:

    1. HTTP upload to the device                   -> UPLOADED_TO_DEVICE
    2. If printing was requested:
       a. fixed wait for the device to store it    -> AWAITING_DEVICE_READY
       b. M23 <file> / M24 on the command port     -> COMMANDS_SENT
    3. Done                                        -> COMPLETED

The print start never begins before the upload has returned successfully.
Any failure moves the request to FAILED and is re-raised for the route to
map onto a status code. Nothing is retried.

Thread Safety:
    - RelayService holds only the client and the delay (read-only)
    - Each call to relay() builds its own RelayResult
    - No locking between requests: two uploads to the same device may race
      there, the device is trusted to serialize them
"""

from __future__ import annotations

import time
import uuid
from typing import Callable, Optional

from core.exceptions import BridgeError
from core.mks_client import MKSClient
from models.relay_result import RelayResult, RelayState
from models.upload import UploadRequest
from logging_config import get_logger, get_request_logger


# Module logger
logger = get_logger(__name__)

DEFAULT_START_DELAY_SECONDS = 3.0


class RelayService:
    """
    Relays uploads to one MKS device.

    Attributes:
        client: Device client shared by all requests
        start_delay_seconds: Wait between upload and print start
    """

    def __init__(
        self,
        client: MKSClient,
        start_delay_seconds: float = DEFAULT_START_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize relay service.

        Args:
            client: MKSClient bound to the device address
            start_delay_seconds: Seconds to wait before M23/M24
            sleep: Blocking wait function (replaceable in tests)
        """
        if client is None:
            raise ValueError("client is required")
        if start_delay_seconds < 0:
            raise ValueError("start_delay_seconds must not be negative")

        self._client = client
        self._start_delay_seconds = start_delay_seconds
        self._sleep = sleep

        logger.info(
            f"Relay service ready for MKS at {client.device} "
            f"(command port {client.device.command_port}, start delay {start_delay_seconds}s)"
        )

    @property
    def client(self) -> MKSClient:
        return self._client

    @property
    def start_delay_seconds(self) -> float:
        return self._start_delay_seconds

    def relay(self, upload: UploadRequest, request_id: Optional[str] = None) -> RelayResult:
        """
        Forward an upload and optionally start printing it.

        Args:
            upload: Extracted upload (consumed)
            request_id: Identifier for log correlation (generated if omitted)

        Returns:
            RelayResult in COMPLETED state

        Raises:
            UploadFailed: Device upload failed, print start not attempted
            PrintStartError: Upload succeeded but the print did not start
        """
        request_id = request_id or str(uuid.uuid4())
        request_logger = get_request_logger(request_id)

        result = RelayResult(request_id=request_id, filename=upload.filename)
        result.advance(RelayState.EXTRACTED)

        request_logger.info(
            f"Relaying {upload.describe()} print={upload.start_printing} to MKS at {self._client.device}"
        )

        try:
            self._client.upload_file(upload, logger=request_logger)
            result.advance(RelayState.UPLOADED_TO_DEVICE)

            if upload.start_printing:
                result.advance(RelayState.AWAITING_DEVICE_READY)
                if self._start_delay_seconds > 0:
                    request_logger.debug(f"Waiting {self._start_delay_seconds}s before starting print")
                    self._sleep(self._start_delay_seconds)

                result.job_start = self._client.start_job(upload.filename, logger=request_logger)
                result.advance(RelayState.COMMANDS_SENT)
                request_logger.info(f"Print start response from MKS: {result.job_start.response}")

        except BridgeError as e:
            result.fail(e.kind)
            request_logger.error(f"Relay failed in state {result.history[-2].value}: {e}")
            raise

        result.advance(RelayState.COMPLETED)
        request_logger.debug(f"Relay finished: {result.to_dict()}")
        return result

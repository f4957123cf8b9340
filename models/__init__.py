"""
Data models for the OctoPrint-to-MKS bridge.

This module contains dataclasses for:
- DeviceAddress: Printer address and derived endpoints (frozen)
- UploadRequest: One extracted upload, consumed once by the relay
- RelayResult: How far an upload got, with the print-start response
"""

from .device import DeviceAddress
from .upload import UploadRequest
from .relay_result import RelayResult, RelayState, JobStartResult

__all__ = [
    "DeviceAddress",
    "UploadRequest",
    "RelayResult",
    "RelayState",
    "JobStartResult",
]

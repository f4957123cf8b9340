"""
Services layer for the OctoPrint-to-MKS bridge.

- upload_extractor: OctoPrint multipart request -> UploadRequest
- RelayService: UploadRequest -> device upload -> optional print start

Each upload runs start to finish on the request thread that received it.
"""

from .upload_extractor import extract_upload
from .relay_service import RelayService

__all__ = [
    "extract_upload",
    "RelayService",
]

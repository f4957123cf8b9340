"""
Upload request model.

An UploadRequest is what the extractor hands to the relay: one G-code file
taken from the OctoPrint form, plus whether printing should start.

Lifecycle:
    Created by services.upload_extractor from a Flask request,
    consumed exactly once by the relay, dropped with the response.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO


@dataclass
class UploadRequest:
    """
    A single uploaded file, ready to be forwarded.

    The content stream is single-use: the relay reads it once, from the
    start, and never rewinds it.
    """

    filename: str
    """Filename exactly as sent by the client (not sanitized)."""

    size: int
    """Size of the file in bytes."""

    content: BinaryIO
    """Readable stream positioned at the start of the file."""

    start_printing: bool = False
    """True when the client asked to start printing after the upload."""

    def describe(self) -> str:
        """Short description for log lines."""
        return f"filename={self.filename} size={self.size}"

"""
OctoPrint upload extraction.

Turns a Flask request for POST /api/files/local into an UploadRequest.

Form fields (OctoPrint file upload API):
    file   - required, exactly one file part
    print  - optional, "true" starts printing after the upload

Quirks kept on purpose:
    - "print" must be exactly "true" (case-sensitive). Several "print"
      values are not an error, they just mean "don't print".
    - The filename is passed on verbatim, never sanitized.
    - A "file" part with an empty filename is a plain form value, not a file.
"""

from __future__ import annotations

import os

from flask import Request, current_app
from werkzeug.exceptions import RequestEntityTooLarge

from core.exceptions import AmbiguousFileCount, MissingFile, MultipartParseFailed
from models.upload import UploadRequest
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

FILE_FIELD = "file"
PRINT_FIELD = "print"
PRINT_TRUE = "true"
MULTIPART_MIMETYPE = "multipart/form-data"


def wants_printing(values: list) -> bool:
    """True only for a single "print" value equal to "true"."""
    return len(values) == 1 and values[0] == PRINT_TRUE


def _stream_size(stream) -> int:
    """Size of a seekable stream, leaving it positioned at the start."""
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def extract_upload(request: Request) -> UploadRequest:
    """
    Extract the uploaded file and print flag from an OctoPrint request.

    Args:
        request: Incoming Flask request

    Returns:
        UploadRequest with the content stream at position 0

    Raises:
        MultipartParseFailed: Body is not multipart/form-data, is malformed,
            exceeds MAX_CONTENT_LENGTH, or the file exceeds UPLOAD_CEILING_BYTES
        MissingFile: No "file" part with a filename
        AmbiguousFileCount: More than one "file" part
    """
    if request.mimetype != MULTIPART_MIMETYPE:
        raise MultipartParseFailed(
            f"unexpected content type {request.mimetype or 'none'}",
            {"content_type": request.content_type},
        )

    try:
        form = request.form
        files = request.files
    except RequestEntityTooLarge:
        raise MultipartParseFailed(
            "request body too large",
            {"content_length": request.content_length, "limit": request.max_content_length},
        )
    except ValueError as e:
        raise MultipartParseFailed(str(e))

    start_printing = wants_printing(form.getlist(PRINT_FIELD))

    parts = [part for part in files.getlist(FILE_FIELD) if part.filename]
    if not parts:
        raise MissingFile(FILE_FIELD)
    if len(parts) != 1:
        raise AmbiguousFileCount(len(parts), FILE_FIELD)

    part = parts[0]
    try:
        size = _stream_size(part.stream)
    except OSError as e:
        raise MultipartParseFailed(f"can't read uploaded file: {e}")

    ceiling = current_app.config["UPLOAD_CEILING_BYTES"]
    if size > ceiling:
        raise MultipartParseFailed(
            f"gcode file too large: {size} bytes",
            {"size": size, "limit": ceiling},
        )

    upload = UploadRequest(
        filename=part.filename,
        size=size,
        content=part.stream,
        start_printing=start_printing,
    )

    logger.info(f"Received gcode file: filename={upload.filename} size={upload.size}")
    return upload

"""
OctoPrint file upload route.

POST /api/files/local receives a G-code file from a slicer and relays it to
the MKS printer. The client only learns the outcome from the status code:

    200 {}   - uploaded (and started, if "print=true" was sent)
    400      - the request could not be parsed, or the device upload failed
    500      - the file is on the device but the print did not start
"""

import uuid

from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
)

from core.exceptions import BridgeError, UploadExtractionError
from services.upload_extractor import extract_upload
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

files_bp = Blueprint("files", __name__)


@files_bp.route("/api/files/local", methods=["POST"])
def upload_local():
    """
    Accept an OctoPrint upload and relay it to the device.

    Flow:
    1. Extract exactly one "file" part and the "print" flag
    2. Upload the file to the device over HTTP
    3. If requested, wait, then send M23/M24 over TCP
    """
    try:
        upload = extract_upload(request)
    except UploadExtractionError as e:
        logger.error(f"can't parse octoprint request: {e}")
        return "", e.http_status

    relay_service = current_app.config["RELAY_SERVICE"]
    request_id = str(uuid.uuid4())

    try:
        relay_service.relay(upload, request_id=request_id)
    except BridgeError as e:
        logger.error(f"Upload {request_id[:8]} of {upload.filename} failed [{e.kind}]: {e}")
        return "", e.http_status

    return jsonify({})

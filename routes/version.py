"""
OctoPrint version route.

Slicers probe /api/version to check they are talking to OctoPrint before
uploading. The answer is fixed: this bridge mimics OctoPrint 1.3.10.
"""

from flask import Blueprint, jsonify

version_bp = Blueprint("version", __name__)

VERSION_INFO = {
    "api": "0.1",
    "server": "1.3.10",
    "text": "OctoPrint 1.3.10",
}


@version_bp.route("/api/version", methods=["GET"])
def version():
    """Report the emulated OctoPrint API and server version."""
    return jsonify(VERSION_INFO)

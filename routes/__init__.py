"""
Flask route blueprints for the OctoPrint-to-MKS bridge.

This module contains the emulated slice of the OctoPrint API:
- version: GET /api/version
- files: POST /api/files/local (upload and optional print start)

Each blueprint is registered with the Flask app in create_app().
"""

from .version import version_bp
from .files import files_bp

__all__ = [
    "version_bp",
    "files_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(version_bp)
    app.register_blueprint(files_bp)

"""
Unit tests for the OctoPrint upload extractor.

Requests are built with Flask's test_request_context so the real Werkzeug
multipart parser is exercised.
"""

import io

import pytest
from flask import Flask, request

from config import Config
from core.exceptions import AmbiguousFileCount, MissingFile, MultipartParseFailed
from services.upload_extractor import extract_upload, wants_printing


CEILING = Config.UPLOAD_CEILING_BYTES


# Fixtures

@pytest.fixture
def flask_app():
    """Bare Flask app with the bridge's upload limit."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = Config.MAX_CONTENT_LENGTH
    app.config["UPLOAD_CEILING_BYTES"] = CEILING
    return app


def _extract(app, data, content_type="multipart/form-data"):
    with app.test_request_context(
        "/api/files/local", method="POST", data=data, content_type=content_type
    ):
        upload = extract_upload(request)
        # Read inside the context: the spooled file is closed afterwards
        return upload, upload.content.read()


# Tests for file extraction

class TestFileExtraction:
    """Exactly one "file" part is required."""

    def test_single_file_returned_unaltered(self, flask_app):
        content = b"G28\nG1 X10 Y10\n"
        upload, body = _extract(flask_app, {"file": (io.BytesIO(content), "a.gco")})

        assert upload.filename == "a.gco"
        assert upload.size == len(content)
        assert body == content

    def test_binary_content_preserved(self, flask_app):
        content = bytes(range(256)) * 4 + b"\r\n--not-a-boundary\r\n"
        upload, body = _extract(flask_app, {"file": (io.BytesIO(content), "bin.gco")})

        assert upload.size == len(content)
        assert body == content

    def test_empty_file(self, flask_app):
        upload, body = _extract(flask_app, {"file": (io.BytesIO(b""), "empty.gco")})

        assert upload.size == 0
        assert body == b""

    def test_one_byte_file(self, flask_app):
        upload, body = _extract(flask_app, {"file": (io.BytesIO(b"\x00"), "one.gco")})

        assert upload.size == 1
        assert body == b"\x00"

    def test_file_at_ceiling(self, flask_app):
        content = bytes([i % 251 for i in range(1024)]) * (CEILING // 1024)
        upload, body = _extract(flask_app, {"file": (io.BytesIO(content), "big.gco")})

        assert upload.size == CEILING
        assert body == content

    def test_filename_not_sanitized(self, flask_app):
        upload, _ = _extract(
            flask_app, {"file": (io.BytesIO(b"x"), "../parts/my part #1.gco")}
        )

        assert upload.filename == "../parts/my part #1.gco"

    def test_stream_positioned_at_start(self, flask_app):
        with flask_app.test_request_context(
            "/api/files/local",
            method="POST",
            data={"file": (io.BytesIO(b"abcdef"), "a.gco")},
            content_type="multipart/form-data",
        ):
            upload = extract_upload(request)
            assert upload.content.tell() == 0

    def test_missing_file_raises(self, flask_app):
        with pytest.raises(MissingFile) as exc_info:
            _extract(flask_app, {"print": "true"})

        assert exc_info.value.http_status == 400

    def test_file_sent_as_plain_field_is_missing(self, flask_app):
        with pytest.raises(MissingFile):
            _extract(flask_app, {"file": "G28"})

    def test_file_with_empty_filename_is_missing(self, flask_app):
        body = (
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="file"; filename=""\r\n'
            b"Content-Type: application/octet-stream\r\n"
            b"\r\n"
            b"G28\r\n"
            b"--XYZ--\r\n"
        )

        with pytest.raises(MissingFile):
            _extract(flask_app, body, content_type="multipart/form-data; boundary=XYZ")

    def test_empty_filename_part_not_counted(self, flask_app):
        body = (
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="file"; filename=""\r\n'
            b"\r\n"
            b"\r\n"
            b"--XYZ\r\n"
            b'Content-Disposition: form-data; name="file"; filename="a.gco"\r\n'
            b"Content-Type: application/octet-stream\r\n"
            b"\r\n"
            b"G28\r\n"
            b"--XYZ--\r\n"
        )

        upload, content = _extract(
            flask_app, body, content_type="multipart/form-data; boundary=XYZ"
        )

        assert upload.filename == "a.gco"
        assert content == b"G28"

    @pytest.mark.parametrize("count", [2, 3])
    def test_multiple_files_raise_with_count(self, flask_app, count):
        files = [(io.BytesIO(b"G28"), f"part{i}.gco") for i in range(count)]

        with pytest.raises(AmbiguousFileCount) as exc_info:
            _extract(flask_app, {"file": files})

        assert exc_info.value.count == count
        assert str(count) in str(exc_info.value)


# Tests for the "print" flag

class TestPrintFlag:
    """Printing starts only for a single, exact "true"."""

    def test_true_starts_printing(self, flask_app):
        upload, _ = _extract(flask_app, {"file": (io.BytesIO(b"x"), "a.gco"), "print": "true"})
        assert upload.start_printing is True

    def test_absent_does_not_print(self, flask_app):
        upload, _ = _extract(flask_app, {"file": (io.BytesIO(b"x"), "a.gco")})
        assert upload.start_printing is False

    @pytest.mark.parametrize("value", ["", "True", "TRUE", "1", "yes", "true "])
    def test_other_values_do_not_print(self, flask_app, value):
        upload, _ = _extract(flask_app, {"file": (io.BytesIO(b"x"), "a.gco"), "print": value})
        assert upload.start_printing is False

    def test_multiple_values_do_not_print(self, flask_app):
        upload, _ = _extract(
            flask_app, {"file": (io.BytesIO(b"x"), "a.gco"), "print": ["true", "true"]}
        )
        assert upload.start_printing is False

    @pytest.mark.parametrize(
        "values, expected",
        [
            ([], False),
            (["true"], True),
            (["false"], False),
            (["true", "false"], False),
            (["true", "true"], False),
        ],
    )
    def test_wants_printing(self, values, expected):
        assert wants_printing(values) is expected


# Tests for unparseable requests

class TestParseFailures:

    def test_non_multipart_body_rejected(self, flask_app):
        with pytest.raises(MultipartParseFailed) as exc_info:
            _extract(flask_app, '{"file": "a.gco"}', content_type="application/json")

        assert exc_info.value.http_status == 400

    def test_missing_content_type_rejected(self, flask_app):
        with pytest.raises(MultipartParseFailed):
            _extract(flask_app, b"G28", content_type=None)

    def test_body_over_limit_rejected(self, flask_app):
        flask_app.config["MAX_CONTENT_LENGTH"] = 1024

        with pytest.raises(MultipartParseFailed) as exc_info:
            _extract(flask_app, {"file": (io.BytesIO(b"x" * 4096), "a.gco")})

        assert "too large" in str(exc_info.value)

    def test_file_over_ceiling_rejected(self, flask_app):
        # Fits MAX_CONTENT_LENGTH, only the file itself is too big
        content = b"\x00" * (CEILING + 1)

        with pytest.raises(MultipartParseFailed) as exc_info:
            _extract(flask_app, {"file": (io.BytesIO(content), "huge.gco")})

        assert exc_info.value.details == {"size": CEILING + 1, "limit": CEILING}
        assert exc_info.value.http_status == 400

    def test_body_over_envelope_rejected(self, flask_app):
        content = b"\x00" * (Config.MAX_CONTENT_LENGTH + 1)

        with pytest.raises(MultipartParseFailed, match="too large"):
            _extract(flask_app, {"file": (io.BytesIO(content), "huge.gco")})

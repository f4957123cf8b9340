"""
Shared fixtures for the bridge tests.

The device is faked on both protocols:
- HTTP upload: intercepted with the ``responses`` library
- TCP commands: a real loopback server (MockMKSCommandPort) that records
  what it receives and answers like the firmware does
"""

import io
import logging
import socket
import threading

import pytest
from werkzeug.wrappers import Request

from app import create_app
from logging_config import APP_LOGGER_NAME


DEVICE_HOST = "127.0.0.1"
DEVICE_UPLOAD_URL = f"http://{DEVICE_HOST}/upload"


class MockMKSCommandPort:
    """
    Loopback stand-in for the MKS command port.

    Accepts a single connection, reads until it has seen ``expect`` (or EOF),
    then sends ``reply`` and closes.
    """

    def __init__(self, reply: bytes = b"ok\r\nok\r\n", expect: bytes = b"M24\r\n"):
        self.reply = reply
        self.expect = expect
        self.received = b""
        self.connections = 0
        self.done = threading.Event()

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((DEVICE_HOST, 0))
        self._sock.listen(1)
        self._sock.settimeout(10)
        self.port = self._sock.getsockname()[1]

        self._thread = threading.Thread(target=self._serve, name="MockMKS", daemon=True)
        self._thread.start()

    def _serve(self):
        try:
            conn, _ = self._sock.accept()
        except OSError:
            self.done.set()
            return
        self.connections += 1
        with conn:
            conn.settimeout(10)
            try:
                while self.expect not in self.received:
                    chunk = conn.recv(1024)
                    if not chunk:
                        break
                    self.received += chunk
                if self.reply:
                    conn.sendall(self.reply)
            except OSError:
                pass
        self.done.set()

    def close(self):
        # Wake a pending accept() so the thread can finish
        if not self.done.is_set():
            try:
                socket.create_connection((DEVICE_HOST, self.port), timeout=1).close()
            except OSError:
                pass
        self._thread.join(timeout=5)
        self._sock.close()


class MockMKSWebServer:
    """
    Loopback stand-in for the MKS HTTP upload handler.

    Reads one complete POST, then answers 200 with ``reply``. With a
    ``byte_delay`` the reply body is sent one byte at a time.
    """

    def __init__(self, reply: bytes = b"ok", byte_delay: float = 0.0):
        self.reply = reply
        self.byte_delay = byte_delay
        self.request = b""
        self.done = threading.Event()
        self._stop = threading.Event()

        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((DEVICE_HOST, 0))
        self._sock.listen(1)
        self._sock.settimeout(10)
        self.port = self._sock.getsockname()[1]

        self._thread = threading.Thread(target=self._serve, name="MockMKSWeb", daemon=True)
        self._thread.start()

    def _read_request(self, conn):
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = conn.recv(4096)
            if not chunk:
                return data
            data += chunk
        head, _, body = data.partition(b"\r\n\r\n")
        length = 0
        for line in head.split(b"\r\n")[1:]:
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                length = int(value.strip())
        while len(body) < length:
            chunk = conn.recv(4096)
            if not chunk:
                break
            body += chunk
        return head + b"\r\n\r\n" + body

    def _serve(self):
        try:
            conn, _ = self._sock.accept()
        except OSError:
            self.done.set()
            return
        with conn:
            conn.settimeout(10)
            try:
                self.request = self._read_request(conn)
                conn.sendall(
                    b"HTTP/1.1 200 OK\r\n"
                    + f"Content-Length: {len(self.reply)}\r\n".encode("ascii")
                    + b"Connection: close\r\n\r\n"
                )
                if not self.byte_delay:
                    conn.sendall(self.reply)
                for i in range(len(self.reply) if self.byte_delay else 0):
                    if self._stop.wait(self.byte_delay):
                        break
                    conn.sendall(self.reply[i:i + 1])
            except OSError:
                pass
        self.done.set()

    def close(self):
        self._stop.set()
        if not self.done.is_set():
            try:
                socket.create_connection((DEVICE_HOST, self.port), timeout=1).close()
            except OSError:
                pass
        self._thread.join(timeout=5)
        self._sock.close()


def parse_device_upload(body: bytes):
    """
    Decode the multipart body sent to the device.

    Returns:
        Tuple of (field name, filename, file bytes)
    """
    boundary = body.split(b"\r\n", 1)[0][2:].decode("ascii")
    req = Request.from_values(
        input_stream=io.BytesIO(body),
        content_length=len(body),
        content_type=f"multipart/form-data; boundary={boundary}",
        method="POST",
    )
    (field, storage), = req.files.items(multi=True)
    return field, storage.filename, storage.read()


@pytest.fixture
def command_port():
    """A fake MKS command port answering "ok" to M23/M24."""
    server = MockMKSCommandPort()
    yield server
    server.close()


@pytest.fixture
def app(command_port):
    """Bridge app pointed at 127.0.0.1, command port on the fake server."""
    app = create_app(
        device_host=DEVICE_HOST,
        config_object="config.TestingConfig",
        config_overrides={"MKS_COMMAND_PORT": command_port.port},
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def gcode_form(content: bytes = b"G28\nG1 X10", filename: str = "a.gco", **fields):
    """Multipart form data for the Flask test client."""
    data = {"file": (io.BytesIO(content), filename)}
    data.update(fields)
    return data


@pytest.fixture
def app_log(app, caplog):
    """
    caplog wired to the application logger.

    The application logger does not propagate to the root logger, so the
    capture handler is attached to it directly.
    """
    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.addHandler(caplog.handler)
    yield caplog
    app_logger.removeHandler(caplog.handler)

"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig
from fileserver.core import Endpoint, Transport


HTML_CONTENT = b"<p>hi</p>\n"          # 10 bytes
JPEG_CONTENT = b"\xff\xd8\xff\xe0fake-jpeg\xff\xd9"


@pytest.fixture
def serve_root(tmp_path: Path) -> Path:
    """A serving root holding file1.html (10 bytes) and image1.jpg."""
    root = tmp_path / "data"
    root.mkdir()
    (root / "file1.html").write_bytes(HTML_CONTENT)
    (root / "image1.jpg").write_bytes(JPEG_CONTENT)
    return root


@pytest.fixture
def config(serve_root: Path) -> ServerConfig:
    """Test configuration: loopback, OS-chosen port, fast shutdown polling."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        serve_root=str(serve_root),
        poll_interval=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def loopback() -> Endpoint:
    return Endpoint.parse(Endpoint.LOCALHOST, 0)


@pytest.fixture
def listener(loopback: Endpoint) -> Generator[Transport, None, None]:
    """A LISTENING transport on an OS-chosen loopback port."""
    transport = Transport.create_bind(loopback).unwrap()
    transport.listen().unwrap()
    yield transport
    transport.close()


@pytest.fixture
def connected_pair(listener: Transport) -> Generator[Tuple[Transport, Transport], None, None]:
    """(server side, client side) of one loopback TCP connection."""
    client = Transport.create_connect(listener.local_endpoint().unwrap()).unwrap()
    server_side, _ = listener.accept().unwrap()
    yield server_side, client
    server_side.close()
    client.close()


def http_exchange(endpoint: Endpoint, raw: bytes, timeout: float = 5.0) -> bytes:
    """Send `raw` to the server and read the whole response until EOF."""
    with socket.create_connection(endpoint.to_native(), timeout=timeout) as s:
        s.sendall(raw)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> Tuple[str, dict, bytes]:
    """Split a response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
    return lines[0], headers, body


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def endpoint(self) -> Endpoint:
        return self.server.endpoint

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A FileServer serving `serve_root` on a loopback port."""
    srv = RunningServer(FileServer(config))
    srv.start()

    yield srv

    srv.stop()

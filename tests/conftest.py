"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig


INDEX_HTML = b"<html><body><h1>Hello from fileserver</h1></body></html>\n"
STYLE_CSS = b"body { margin: 0; font-family: sans-serif; }\n" * 40
DOCS_INDEX_HTML = b"<html><body>Docs</body></html>\n"
# Larger than several read buffers, with every byte value present
LOGO_PNG = bytes(range(256)) * 64


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request, as a browser would send it."""
    return (
        b"GET /index.html HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A small document tree:

        index.html
        style.css
        logo.png
        docs/index.html
        empty/              (directory without an index)
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "logo.png").write_bytes(LOGO_PNG)
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_bytes(DOCS_INDEX_HTML)
    (root / "empty").mkdir()
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def config(web_root: Path, free_port: int) -> ServerConfig:
    """Test server configuration serving `web_root` on loopback."""
    return ServerConfig(
        host="127.0.0.1",
        port=free_port,
        root_directory=str(web_root),
        timeout=5.0,
        log_level="DEBUG",
    )


class TestServer:
    """Runs a FileServer on a background thread."""

    __test__ = False  # Not a test class, despite the name

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self, once: bool = False):
        """Start the server and wait until it is listening."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"once": once},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def join(self, timeout: float = 5.0) -> bool:
        """Wait for the server thread to exit; True if it did."""
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def request(self, raw: bytes, **kwargs) -> bytes:
        """Send raw request bytes and return everything the server sends back."""
        return send_raw(self.port, raw, **kwargs)


def send_raw(
    port: int,
    raw: bytes,
    timeout: float = 5.0,
    shutdown_write: bool = False,
) -> bytes:
    """
    Open a connection, send `raw`, read until the server closes.

    With shutdown_write, the client half-closes after sending, the way a
    client that sends a partial request and gives up would.
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        if raw:
            sock.sendall(raw)
        if shutdown_write:
            sock.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(data: bytes) -> tuple[str, dict, bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server over `web_root`, stopped after the test."""
    srv = TestServer(FileServer(config))
    srv.start()

    yield srv

    srv.stop()


@pytest.fixture
def parse_response():
    """The split_response() helper, as a fixture."""
    return split_response


@pytest.fixture
def raw_client():
    """The send_raw() helper, as a fixture."""
    return send_raw

"""
End-to-end tests: a real server on a loopback port, real sockets.
"""

import socket
import threading

import pytest

from conftest import (
    INDEX_HTML, STYLE_CSS, DOCS_INDEX_HTML, LOGO_PNG,
    TestServer, send_raw, split_response,
)
from fileserver import FileServer
from fileserver.core.connection import Connection
from fileserver.handlers.static import StaticFileHandler
from fileserver.http.request import RequestParser, HTTPParseError


def get(server: TestServer, path: str, version: str = "HTTP/1.1"):
    raw = f"GET {path} {version}\r\nHost: localhost\r\n\r\n".encode()
    return split_response(server.request(raw))


class TestServingFiles:

    def test_root_serves_index(self, test_server: TestServer):
        status, headers, body = get(test_server, "/")

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "text/html"
        assert headers["Content-Length"] == str(len(INDEX_HTML))
        assert headers["Connection"] == "close"
        assert body == INDEX_HTML

    def test_exact_header_block(self, test_server: TestServer):
        data = test_server.request(b"GET /style.css HTTP/1.1\r\n\r\n")

        expected_head = (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/css\r\n"
            b"Content-Length: " + str(len(STYLE_CSS)).encode() + b"\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )
        assert data == expected_head + STYLE_CSS

    def test_binary_file_larger_than_buffer(self, test_server: TestServer):
        status, headers, body = get(test_server, "/logo.png")

        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "image/png"
        assert headers["Content-Length"] == str(len(LOGO_PNG))
        assert body == LOGO_PNG

    def test_directory_index(self, test_server: TestServer):
        _, _, body = get(test_server, "/docs/")
        assert body == DOCS_INDEX_HTML

    def test_query_string_ignored(self, test_server: TestServer):
        status, _, body = get(test_server, "/index.html?v=2")

        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

    def test_http10_version_echoed(self, test_server: TestServer):
        status, _, _ = get(test_server, "/", version="HTTP/1.0")
        assert status == "HTTP/1.0 200 OK"

    def test_partial_request_then_half_close(self, test_server: TestServer):
        """Request line without a terminator, then the client stops sending."""
        data = test_server.request(b"GET /index.html HTTP/1.1", shutdown_write=True)
        status, _, body = split_response(data)

        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML


class TestErrors:

    def test_not_found(self, test_server: TestServer):
        status, headers, body = get(test_server, "/missing.html")

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["Content-Type"] == "text/html"
        assert int(headers["Content-Length"]) == len(body)
        assert b"<h1>404 Not Found</h1>" in body

    def test_method_not_implemented(self, test_server: TestServer):
        data = test_server.request(b"POST /index.html HTTP/1.1\r\nContent-Length: 0\r\n\r\n")
        status, headers, body = split_response(data)

        assert status == "HTTP/1.1 501 Not Implemented"
        assert int(headers["Content-Length"]) == len(body)
        assert b"Only GET method is supported." in body

    @pytest.mark.parametrize("path", ["/../etc/passwd", "/%2e%2e/etc/passwd", "/docs/../index.html"])
    def test_traversal_rejected(self, test_server: TestServer, path: str):
        status, _, body = get(test_server, path)

        assert status == "HTTP/1.1 400 Bad Request"
        assert b"Invalid path." in body

    @pytest.mark.parametrize("raw", [
        b"GARBAGE\r\n\r\n",
        b"GET / HTTP/1.1 extra\r\n\r\n",
        b"GET /" + b"a" * 300 + b" HTTP/1.1\r\n\r\n",
        b"GETTTTTTTTTTTTTTTTT / HTTP/1.1\r\n\r\n",
    ])
    def test_malformed_request_line(self, test_server: TestServer, raw: bytes):
        status, headers, body = split_response(test_server.request(raw))

        assert status == "HTTP/1.1 400 Bad Request"
        assert headers["Connection"] == "close"
        assert int(headers["Content-Length"]) == len(body)

    def test_request_line_longer_than_buffer(self, test_server: TestServer):
        raw = b"GET /" + b"a" * 2000 + b" HTTP/1.1\r\n\r\n"
        status, _, _ = split_response(test_server.request(raw))
        assert status == "HTTP/1.1 400 Bad Request"


class TestConnectionHandling:

    def test_silent_disconnect_does_not_stop_server(self, test_server: TestServer):
        with socket.create_connection(("127.0.0.1", test_server.port)):
            pass  # Connect and leave without sending anything

        status, _, body = get(test_server, "/")
        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

    def test_sequential_clients(self, test_server: TestServer):
        for path, expected in [("/", INDEX_HTML), ("/style.css", STYLE_CSS), ("/docs", DOCS_INDEX_HTML)]:
            _, _, body = get(test_server, path)
            assert body == expected

    def test_waiting_client_is_served_after_current_one(self, test_server: TestServer):
        """A second client queues in the backlog while the first is slow."""
        slow = socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0)
        try:
            slow.sendall(b"GET /index")

            results = {}
            waiting = threading.Thread(
                target=lambda: results.setdefault("data", send_raw(test_server.port, b"GET / HTTP/1.1\r\n\r\n"))
            )
            waiting.start()

            slow.sendall(b".html HTTP/1.1\r\n\r\n")
            first = b""
            while True:
                chunk = slow.recv(4096)
                if not chunk:
                    break
                first += chunk
        finally:
            slow.close()

        waiting.join(timeout=5.0)

        assert split_response(first)[2] == INDEX_HTML
        assert split_response(results["data"])[2] == INDEX_HTML

    def test_client_timeout(self, config):
        """A client that connects and stalls is dropped without a response."""
        config.timeout = 0.5
        server = TestServer(FileServer(config))
        server.start()
        try:
            with socket.create_connection(("127.0.0.1", server.port), timeout=5.0) as sock:
                assert sock.recv(1024) == b""

            status, _, _ = get(server, "/")
            assert status == "HTTP/1.1 200 OK"
        finally:
            server.stop()

    def test_once_mode_exits_after_one_client(self, config):
        server = TestServer(FileServer(config))
        server.start(once=True)

        status, _, _ = get(server, "/")

        assert status == "HTTP/1.1 200 OK"
        assert server.join(timeout=5.0)
        assert not server.server.is_running

    def test_shutdown(self, config):
        server = TestServer(FileServer(config))
        server.start()
        assert server.server.is_running

        server.stop()

        assert server.server.wait_for_shutdown(timeout=5.0)
        assert not server.server.is_running


class TestFailureIsolation:
    """One bad request or failing handler must not stop the server."""

    def test_non_ascii_version_falls_back(self, test_server: TestServer):
        data = test_server.request("GET / HTTP/€\r\n\r\n".encode("utf-8"))
        status, headers, body = split_response(data)

        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

        status, _, _ = get(test_server, "/")
        assert status == "HTTP/1.1 200 OK"
        assert test_server.server.is_running

    def test_handler_exception_becomes_500(self, test_server: TestServer, monkeypatch, caplog):
        original = StaticFileHandler.handle
        calls = []

        def failing_once(self, request):
            calls.append(request.path)
            if len(calls) == 1:
                raise RuntimeError("disk on fire")
            return original(self, request)

        monkeypatch.setattr(StaticFileHandler, "handle", failing_once)

        status, headers, body = get(test_server, "/")

        assert status == "HTTP/1.1 500 Internal Server Error"
        assert headers["Content-Type"] == "text/html"
        assert int(headers["Content-Length"]) == len(body)
        assert b"disk on fire" not in body
        assert "disk on fire" in caplog.text

        status, _, body = get(test_server, "/")
        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

    def test_unexpected_send_error_keeps_accepting(self, test_server: TestServer, monkeypatch):
        original = Connection.send_response
        calls = []

        def broken_once(self, response):
            calls.append(response.status)
            if len(calls) == 1:
                raise ValueError("unexpected")
            return original(self, response)

        monkeypatch.setattr(Connection, "send_response", broken_once)

        assert test_server.request(b"GET / HTTP/1.1\r\n\r\n") == b""

        status, _, body = get(test_server, "/")
        assert status == "HTTP/1.1 200 OK"
        assert body == INDEX_HTML

    def test_parse_error_status_is_used(self, test_server: TestServer, monkeypatch):
        def reject(self, data, client_address=("", 0)):
            raise HTTPParseError("not today", status_code=501)

        monkeypatch.setattr(RequestParser, "parse", reject)

        status, headers, body = get(test_server, "/")

        assert status == "HTTP/1.1 501 Not Implemented"
        assert int(headers["Content-Length"]) == len(body)

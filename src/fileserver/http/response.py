"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the responses this server sends: a streamed file, or a small HTML
error page.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                  ← status line                │
    │   Content-Type: text/css\r\n                                         │
    │   Content-Length: 1834\r\n             ← always byte-exact           │
    │   Connection: close\r\n                ← one request per connection  │
    │   \r\n                                                               │
    │   body { margin: 0; } ...              ← file bytes or error page    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The header block is always exactly those three headers, in that order.

=============================================================================
TWO KINDS OF BODY
=============================================================================

    ERROR PAGE                           FILE
    ──────────                           ────
    body = b"<html>...</html>"           stream = open(path, "rb")
    Content-Length = len(body)           Content-Length = fstat().st_size
    Sent in one sendall()                Sent in buffer-sized chunks

A response carrying a stream owns the open file. Call close() once the
response has been written, whether or not the write succeeded.

=============================================================================
"""

import html
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional, Union

from .status_codes import HTTPStatus


DEFAULT_VERSION = "HTTP/1.1"

# "HTTP/" plus one ASCII digit, a dot and one ASCII digit
VERSION_PATTERN = re.compile(r"HTTP/[0-9]\.[0-9]")


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to the client.

    Attributes:
        status:  Status code (enum)
        headers: Response headers, in send order
        body:    In-memory body (error pages)
        version: Version echoed in the status line
        stream:  Open binary file to stream after the headers
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = DEFAULT_VERSION
    stream: Optional[BinaryIO] = field(default=None, repr=False)

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Declared Content-Length, or the in-memory body size."""
        declared = self.headers.get("Content-Length")
        if declared is not None:
            return int(declared)
        return len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def head_bytes(self) -> bytes:
        """
        Serialize the status line and header block.

        Content-Length is filled in from the body when not set, and every
        response carries "Connection: close".
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Type", "text/html")
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers["Connection"] = "close"

        lines = [self.status_line]
        for name in ("Content-Type", "Content-Length", "Connection"):
            lines.append(f"{name}: {response_headers.pop(name)}")
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")

        # Trailing empty line separates headers from body
        lines.append("")
        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def to_bytes(self) -> bytes:
        """
        Serialize headers plus the in-memory body.

        The stream (if any) is not included; Connection.send_response()
        writes it separately.
        """
        return self.head_bytes() + self.body

    def close(self) -> None:
        """Release the file stream, if this response owns one."""
        if self.stream is not None:
            self.stream.close()
            self.stream = None


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .version("HTTP/1.0")
            .file(fp, size=1834, content_type="text/css")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""
        self._version = DEFAULT_VERSION
        self._stream: Optional[BinaryIO] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def version(self, version: str) -> "ResponseBuilder":
        self._version = version
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body; strings are UTF-8 encoded."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        self._headers["Content-Length"] = str(len(body))
        return self

    def html(self, markup: str) -> "ResponseBuilder":
        return self.content_type("text/html").body(markup)

    def file(self, stream: BinaryIO, size: int, content_type: str) -> "ResponseBuilder":
        """
        Attach an open file to stream after the headers.

        Args:
            stream: File opened in binary mode; the response takes ownership.
            size: Exact byte length of the file.
            content_type: MIME type for the Content-Type header.
        """
        self._stream = stream
        self._body = b""
        self._headers["Content-Type"] = content_type
        self._headers["Content-Length"] = str(size)
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            version=self._version,
            stream=self._stream,
        )


# =============================================================================
# VERSION ECHO
# =============================================================================

def response_version(request_version: Optional[str]) -> str:
    """
    Pick the version for the status line.

    The request's version is echoed when it is exactly "HTTP/x.y" with
    ASCII digits; anything else (including no request at all) gets
    HTTP/1.1. The status line is Latin-1 encoded, so nothing else may
    reach it.

        >>> response_version("HTTP/1.0")
        'HTTP/1.0'
        >>> response_version("HTTP/€")
        'HTTP/1.1'
    """
    if request_version and VERSION_PATTERN.fullmatch(request_version):
        return request_version
    return DEFAULT_VERSION


# =============================================================================
# ERROR PAGES
# =============================================================================
#
# Every error the server produces is one of these. The body is a minimal
# HTML page:
#
#     <html><body><h1>404 Not Found</h1><p>...</p></body></html>
#
# =============================================================================

def error_page(
    status: HTTPStatus,
    message: str,
    version: str = DEFAULT_VERSION,
) -> HTTPResponse:
    """
    Build an HTML error response.

    Args:
        status: Error status.
        message: Sentence shown under the heading (HTML-escaped).
        version: Version for the status line.
    """
    markup = (
        f"<html><body><h1>{int(status)} {status.phrase}</h1>"
        f"<p>{html.escape(message)}</p></body></html>"
    )
    return (ResponseBuilder()
        .status(status)
        .version(response_version(version))
        .html(markup)
        .build())


def bad_request(
    message: str = "Your request could not be parsed.",
    version: str = DEFAULT_VERSION,
) -> HTTPResponse:
    """400 Bad Request: malformed request line or invalid path."""
    return error_page(HTTPStatus.BAD_REQUEST, message, version)


def not_found(
    message: str = "The requested resource was not found on this server.",
    version: str = DEFAULT_VERSION,
) -> HTTPResponse:
    """404 Not Found: the resolved file could not be opened."""
    return error_page(HTTPStatus.NOT_FOUND, message, version)


def not_implemented(
    message: str = "Only GET method is supported.",
    version: str = DEFAULT_VERSION,
) -> HTTPResponse:
    """501 Not Implemented: any method other than GET."""
    return error_page(HTTPStatus.NOT_IMPLEMENTED, message, version)


def internal_error(
    message: str = "The server could not complete the request.",
    version: str = DEFAULT_VERSION,
) -> HTTPResponse:
    """500 Internal Server Error. Keep the message free of internals."""
    return error_page(HTTPStatus.INTERNAL_SERVER_ERROR, message, version)

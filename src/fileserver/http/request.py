"""
=============================================================================
HTTP REQUEST-LINE PARSER
=============================================================================

Turns the first line of a raw HTTP request into a structured HTTPRequest.

Only the request line is interpreted. Header lines that happen to arrive in
the same buffer are kept in `raw` but otherwise ignored.

=============================================================================
REQUEST LINE ANATOMY
=============================================================================

    GET /css/style.css?v=2 HTTP/1.1\r\n
    ─┬─ ─────────┬──────── ───┬────
     │           │            │
   Method   Request-target  Version
                 │
       ┌─────────┴─────────┐
       │                   │
     Path              Query (dropped)
  /css/style.css          v=2

The three tokens are separated by whitespace. Anything other than exactly
three tokens is a malformed request.

=============================================================================
FIXED TOKEN LIMITS
=============================================================================

    ┌──────────┬───────────┬──────────────────────────────────────────┐
    │  Token   │ Max bytes │ Rejected with                            │
    ├──────────┼───────────┼──────────────────────────────────────────┤
    │  method  │    15     │ 400 Bad Request                          │
    │  path    │   255     │ 400 Bad Request                          │
    │  version │    15     │ 400 Bad Request                          │
    └──────────┴───────────┴──────────────────────────────────────────┘

Limits are measured on the raw bytes, before percent-decoding.

=============================================================================
QUESTIONS THAT COME UP
=============================================================================

Q: "Why isn't the method validated here?"
A: "A well-formed line with an unsupported method is not a parse error.
   The handler answers it with 501 Not Implemented, so `POST / HTTP/1.1`
   and `FOO / HTTP/1.1` both parse fine."

Q: "Why isn't '..' rejected here?"
A: "Method is checked before path. `POST /../x HTTP/1.1` must get 501,
   not 400, so the traversal check lives in the handler, after the
   method check."

=============================================================================
"""

from dataclasses import dataclass, field
from urllib.parse import unquote


# Longest accepted tokens, in bytes
MAX_METHOD_LENGTH = 15
MAX_PATH_LENGTH = 255
MAX_VERSION_LENGTH = 15

# Size of a single read from the client; also the longest request line
DEFAULT_MAX_LINE_LENGTH = 1024


class HTTPParseError(Exception):
    """
    Raised when a request line cannot be parsed.

    Carries the HTTP status code the client should receive. Every parse
    failure in this server is a 400 Bad Request.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed request line.

    Attributes:
        method:         Upper-cased method token ("GET", "POST", ...)
        path:           Percent-decoded path without query or fragment.
                        Not sanitised: may still contain "..".
        version:        Version token as sent ("HTTP/1.1")
        target:         The request-target exactly as sent
        client_address: (ip, port) of the client, for logging
        raw:            Bytes received from the client
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    target: str = ""
    client_address: tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def request_line(self) -> str:
        """The request line in canonical form, for log messages."""
        return f"{self.method} {self.target or self.path} {self.version}"


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    =========================================================================
    PARSING STEPS
    =========================================================================

        Raw bytes
            │
            ├── 1. Cut at the first line break (CRLF or bare LF)
            │      No line break and the buffer is full? → 400
            │
            ├── 2. Split on whitespace, expect exactly three tokens
            │
            ├── 3. Check each token against its fixed limit
            │
            ├── 4. Decode tokens as UTF-8
            │
            └── 5. Upper-case the method, split path from query

    =========================================================================
    """

    def __init__(self, max_line_length: int = DEFAULT_MAX_LINE_LENGTH):
        """
        Args:
            max_line_length: Buffer size the request was read with. A buffer
                             this full with no line break means the request
                             line did not fit.
        """
        self.max_line_length = max_line_length

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse the request line at the start of `data`.

        Args:
            data: Raw bytes read from the client.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the line is malformed.
        """
        if not data.strip():
            raise HTTPParseError("Empty request")

        line = self._cut_request_line(data)
        method, target, version = self._split_tokens(line)
        path = self._path_from_target(target)

        return HTTPRequest(
            method=method.upper(),
            path=path,
            version=version,
            target=target,
            client_address=client_address,
            raw=data,
        )

    def _cut_request_line(self, data: bytes) -> bytes:
        """Return the bytes of the first line, without its terminator."""
        line_end = data.find(b"\n")

        if line_end == -1:
            # The connection read stops at the buffer size, so a full buffer
            # without a newline means the line was longer than we accept.
            if len(data) >= self.max_line_length:
                raise HTTPParseError("Request line too long")
            # Client closed after sending a partial line; parse what we have
            return data.rstrip(b"\r")

        return data[:line_end].rstrip(b"\r")

    def _split_tokens(self, line: bytes) -> tuple[str, str, str]:
        tokens = line.split()
        if len(tokens) != 3:
            raise HTTPParseError(
                f"Malformed request line: expected 3 tokens, got {len(tokens)}"
            )

        method, target, version = tokens

        if len(method) > MAX_METHOD_LENGTH:
            raise HTTPParseError("Malformed or too long method")
        if len(target) > MAX_PATH_LENGTH:
            raise HTTPParseError("Malformed or too long path")
        if len(version) > MAX_VERSION_LENGTH:
            raise HTTPParseError("Malformed or too long HTTP version")

        try:
            return (
                method.decode("utf-8"),
                target.decode("utf-8"),
                version.decode("utf-8"),
            )
        except UnicodeDecodeError as e:
            raise HTTPParseError(f"Request line is not valid UTF-8: {e}")

    def _path_from_target(self, target: str) -> str:
        """
        Extract the filesystem-facing path from a request-target.

            "/docs/a%20b.txt?x=1#top"  →  "/docs/a b.txt"
            "?x=1"                     →  "/"
        """
        path = target.partition("?")[0].partition("#")[0]
        return unquote(path) or "/"


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
) -> HTTPRequest:
    """
    Parse a request in one call.

    Use RequestParser directly when parsing many requests with the same
    settings.
    """
    parser = RequestParser(max_line_length=max_line_length)
    return parser.parse(data, client_address)

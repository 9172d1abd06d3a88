"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Decides what to send for a parsed request: a file from the root directory,
or an error page.

=============================================================================
DECISION FLOW
=============================================================================

    HTTPRequest
        │
        ├── method != GET ?              ──► 501 Not Implemented
        │
        ├── ".." in path ?               ──► 400 Bad Request (Invalid path)
        │
        ├── resolve path
        │     "/"            → root / default_file
        │     "/docs/"       → root / docs / default_file
        │     "/docs" (dir)  → root / docs / default_file
        │     "/css/a.css"   → root / css / a.css
        │
        ├── open() fails ?               ──► 404 Not Found
        │
        ├── size unknown ?               ──► 500 Internal Server Error
        │
        └── 200 OK, Content-Type from extension, stream the file

The order matters: a non-GET request with a bad path still gets 501.

=============================================================================
PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd HTTP/1.1

Joining that onto the root would escape it. Any path containing ".." is
refused outright, after percent-decoding, so "%2e%2e" is caught too. This
also refuses harmless names like "notes..txt"; the simple rule is worth it.

=============================================================================
"""

import os
import logging
from pathlib import Path

from ..config import ServerConfig
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    response_version, bad_request, not_found, not_implemented, internal_error,
)
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files from a root directory.

    Usage:
        handler = StaticFileHandler("/var/www/html", default_file="index.html")
        response = handler.handle(request)
        try:
            conn.send_response(response)
        finally:
            response.close()

    The returned response may hold an open file; the caller closes it.
    """

    def __init__(self, root_dir: str | Path, default_file: str = "index.html"):
        """
        Args:
            root_dir: Directory files are served from. Not required to exist;
                      if it doesn't, every request is a 404.
            default_file: File served for "/" and for directory paths.
        """
        self.root_dir = Path(root_dir)
        self.default_file = default_file

    @classmethod
    def from_config(cls, config: ServerConfig) -> "StaticFileHandler":
        return cls(config.root_directory, default_file=config.default_file)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Build the response for a parsed request.

        Args:
            request: The parsed request line.

        Returns:
            A file response (200) or an error page (400/404/500/501).
        """
        version = response_version(request.version)

        if not request.is_get:
            logger.info(f"Method {request.method} not implemented")
            return not_implemented(version=version)

        if ".." in request.path or "\x00" in request.path:
            logger.warning(
                f"Rejected path {request.path!r} from {request.client_address[0]}"
            )
            return bad_request("Invalid path.", version=version)

        full_path = self.resolve(request.path)
        logger.debug(f"Attempting to open file: {full_path}")

        return self._serve_file(full_path, version)

    def resolve(self, request_path: str) -> Path:
        """
        Map a URL path onto the filesystem.

        Does not check for "..": handle() refuses those before calling this.

            >>> StaticFileHandler("/srv").resolve("/")
            PosixPath('/srv/index.html')
            >>> StaticFileHandler("/srv").resolve("/css/site.css")
            PosixPath('/srv/css/site.css')
        """
        relative = request_path.lstrip("/")
        if not relative:
            return self.root_dir / self.default_file

        full_path = self.root_dir / relative
        if request_path.endswith("/") or self._is_dir(full_path):
            full_path = full_path / self.default_file

        return full_path

    @staticmethod
    def _is_dir(path: Path) -> bool:
        """is_dir() that treats an unreadable parent as "not a directory"; open() then 404s."""
        try:
            return path.is_dir()
        except OSError:
            return False

    def _serve_file(self, path: Path, version: str) -> HTTPResponse:
        """
        Open `path` and wrap it in a streaming 200 response.

        The file is opened before its size is read, so a file that exists
        but cannot be read is a 404, not a 500.
        """
        try:
            stream = open(path, "rb")
        except OSError as e:
            logger.info(f"Cannot open {path}: {e.strerror or e}")
            return not_found(version=version)

        try:
            size = os.fstat(stream.fileno()).st_size
        except OSError as e:
            stream.close()
            logger.error(f"{path}: Cannot determine file size: {e}")
            return internal_error("Could not determine file size.", version=version)

        content_type = get_mime_type(path)
        logger.debug(f"Preparing to send {size} bytes of {path} (Content-Type: {content_type})")

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .version(version)
            .file(stream, size=size, content_type=content_type)
            .build())

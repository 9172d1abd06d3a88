"""
HTTP protocol pieces: request-line parsing, responses, status codes and
MIME types.

    from fileserver.http import parse_request, not_found, get_mime_type
"""

from .status_codes import HTTPStatus
from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
    MAX_METHOD_LENGTH,
    MAX_PATH_LENGTH,
    MAX_VERSION_LENGTH,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    response_version,
    error_page,
    bad_request,
    not_found,
    not_implemented,
    internal_error,
)
from .mime_types import get_mime_type, MIME_TYPES, DEFAULT_MIME_TYPE

__all__ = [
    # Status
    "HTTPStatus",
    # Request
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "MAX_METHOD_LENGTH",
    "MAX_PATH_LENGTH",
    "MAX_VERSION_LENGTH",
    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "response_version",
    "error_page",
    "bad_request",
    "not_found",
    "not_implemented",
    "internal_error",
    # MIME
    "get_mime_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
]

"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Bytes in, bytes out:

    socket bytes ──► RequestParser ──► HTTPRequest (+ lazy BodyReader)
                                             │
                                          handlers
                                             │
    socket bytes ◄── HTTPResponse.head_bytes() / iter_body() ◄──┘

=============================================================================
"""

from .body import BodyReader
from .mime_types import MIME_TYPES, lookup
from .request import HTTPRequest, RequestParser
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    interim_continue,
)
from .status_codes import HTTPStatus, body_allowed, reason_phrase
from ..errors import HTTPParseError

__all__ = [
    "BodyReader",
    "HTTPParseError",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "MIME_TYPES",
    "RequestParser",
    "ResponseBuilder",
    "body_allowed",
    "error_response",
    "format_http_date",
    "interim_continue",
    "lookup",
    "reason_phrase",
]

"""
=============================================================================
HTTP STATUS CODES (RFC 9110)
=============================================================================

The subset of status codes the file server emits, plus reason-phrase lookup
for arbitrary codes.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  1xx   │ 100 Continue      - Go ahead and send the PUT body        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  2xx   │ 200 OK            - File bytes or directory listing       │
    │        │ 204 No Content    - PUT stored / DELETE done (or no-op)   │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request   - Malformed request line or framing     │
    │        │ 403 Forbidden     - Path escapes the root directory       │
    │        │ 404 Not Found     - GET on a path that does not exist     │
    │        │ 405 Method Not Allowed - Anything but GET/PUT/DELETE      │
    │        │ 431 Header Fields Too Large - Request head over the limit │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Error - Any other filesystem/stream fault    │
    │        │ 505 Version Not Supported - Not HTTP/1.0 or HTTP/1.1      │
    └────────┴───────────────────────────────────────────────────────────┘

Structured faults may carry codes outside this enum; reason_phrase() falls
back to a generic phrase for those so the status line is always well formed.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum members compare equal to plain integers:

        >>> HTTPStatus.NO_CONTENT == 204
        True
        >>> HTTPStatus.NO_CONTENT.phrase
        'No Content'
    """

    CONTINUE = 100

    OK = 200
    NO_CONTENT = 204

    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431

    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("HTTP/1.1 404 Not Found")."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}

# Generic phrases by class, used for codes not listed above
_CLASS_PHRASES = {
    1: "Informational",
    2: "Success",
    3: "Redirection",
    4: "Client Error",
    5: "Server Error",
}


def reason_phrase(status: int) -> str:
    """
    Get a reason phrase for any status code.

    Examples:
        >>> reason_phrase(403)
        'Forbidden'
        >>> reason_phrase(418)
        'Client Error'
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return _CLASS_PHRASES.get(status // 100, "Unknown")


def body_allowed(status: int) -> bool:
    """
    Whether a response with this status may carry a body.

    1xx, 204 and 304 responses end with the header section (RFC 9110 §6.4.1).
    """
    return not (100 <= status < 200 or status in (204, 304))

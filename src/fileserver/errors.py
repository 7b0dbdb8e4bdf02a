"""
=============================================================================
ERROR TYPES
=============================================================================

Every failure a request can run into falls into one of two shapes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        FAILURE TAXONOMY                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HttpFault (structured)          InternalFault (unstructured)       │
    │   ──────────────────────          ────────────────────────────       │
    │                                                                      │
    │   • Carries an explicit status    • Anything else that went wrong    │
    │   • Sent to the client verbatim   • Becomes 500 + description        │
    │   • e.g. Forbidden (403)          • e.g. EACCES, EISDIR, ENOSPC      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

"Not found" is deliberately NOT in this module: GET and DELETE treat a
missing path as a normal outcome (404 / 204) and never raise for it.

=============================================================================
"""

from typing import Optional


class FileServerError(Exception):
    """Base class for errors raised by the file server."""


class HttpFault(FileServerError):
    """
    A failure that already knows which HTTP response it should become.

    The dispatcher returns {status, body} of an HttpFault to the client
    unchanged.

    Args:
        status: HTTP status code to send.
        body: Plain-text response body.
    """

    def __init__(self, status: int, body: str = ""):
        super().__init__(body or str(status))
        self.status = status
        self.body = body


class Forbidden(HttpFault):
    """Raised when a request path resolves outside the root directory."""

    def __init__(self, body: str = "Forbidden"):
        super().__init__(403, body)


class InternalFault(FileServerError):
    """
    An unrecovered fault: filesystem or stream errors other than "not found".

    Surfaces to the client as 500 with `description` as the body.
    """

    def __init__(self, description: str, cause: Optional[BaseException] = None):
        super().__init__(description)
        self.description = description
        self.cause = cause

    @classmethod
    def from_exception(cls, exc: BaseException) -> "InternalFault":
        """Wrap an arbitrary exception, keeping its text as the description."""
        if isinstance(exc, InternalFault):
            return exc
        return cls(str(exc) or type(exc).__name__, cause=exc)


class HTTPParseError(HttpFault):
    """
    Raised when a request cannot be parsed.

    Defaults to 400; the parser uses 431 for an oversized head and 505 for
    an unsupported protocol version.
    """

    def __init__(self, message: str, status: int = 400):
        super().__init__(status, message)
        self.message = message

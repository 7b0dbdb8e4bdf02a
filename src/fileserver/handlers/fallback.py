"""
Fallback for every method without a handler: 405, filesystem untouched.
"""

from ..http.request import HTTPRequest
from .base import Handler, ResponseDescriptor


class MethodNotAllowedHandler(Handler):
    """Rejects the request with "Method <METHOD> not allowed."."""

    def handle(self, request: HTTPRequest) -> ResponseDescriptor:
        return ResponseDescriptor(
            status=405,
            body=f"Method {request.method} not allowed.",
        )

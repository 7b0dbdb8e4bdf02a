"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Picks the handler for a request method, runs it, and turns whatever comes
back (a descriptor or an exception) into one response shape.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         dispatch(request)                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   method ──► {"GET": GetHandler,          unknown method             │
    │               "PUT": PutHandler,     ───────────────────► 405        │
    │               "DELETE": DeleteHandler}                               │
    │                     │                                                │
    │                     ▼                                                │
    │              handler.handle(request)                                 │
    │                     │                                                │
    │     ┌───────────────┼──────────────────────┐                         │
    │     ▼               ▼                      ▼                         │
    │  descriptor     HttpFault             any other exception            │
    │  (as is)        → {status, body}      → {500, str(exc)}              │
    │                   verbatim              + traceback in the log       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

dispatch() never raises: one failed request never affects another.

The method table is built once and exposed read-only; supported methods
are fixed for the life of the dispatcher.

=============================================================================
EMISSION
=============================================================================

emit() writes a descriptor to the connection:

    - Content-Type defaults to "text/plain"
    - str bodies are UTF-8 encoded, None means empty
    - buffers get Content-Length; streams are sent as they are read
      (chunked on HTTP/1.1, close-delimited on HTTP/1.0)
    - HEAD responses stop after the header section
    - a stream is closed once sent, even if sending failed

=============================================================================
"""

import logging
from types import MappingProxyType
from typing import Mapping

from .core.connection import Connection
from .errors import HttpFault, InternalFault
from .handlers import (
    DeleteHandler,
    GetHandler,
    Handler,
    MethodNotAllowedHandler,
    PutHandler,
    ResponseDescriptor,
)
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .resolver import PathResolver


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain"


class Dispatcher:
    """
    Routes requests to method handlers and normalizes their outcome.

    Args:
        resolver: Path resolver shared by all handlers.
        chunk_size: Streaming chunk size for file reads and uploads.
        server_name: Value for the Server header on emitted responses.

    Usage:
        dispatcher = Dispatcher(PathResolver("/srv/files"))
        descriptor = dispatcher.dispatch(request)
        dispatcher.emit(descriptor, request, conn, keep_alive=True)
    """

    def __init__(
        self,
        resolver: PathResolver,
        chunk_size: int = 64 * 1024,
        server_name: str = "fileserver/1.0",
    ):
        self.resolver = resolver
        self.server_name = server_name

        self._handlers: Mapping[str, Handler] = MappingProxyType({
            "GET": GetHandler(resolver, chunk_size),
            "PUT": PutHandler(resolver, chunk_size),
            "DELETE": DeleteHandler(resolver, chunk_size),
        })
        self._fallback: Handler = MethodNotAllowedHandler(resolver, chunk_size)

    @property
    def handlers(self) -> Mapping[str, Handler]:
        """Read-only view of the method table."""
        return self._handlers

    def handler_for(self, method: str) -> Handler:
        """Handler for a method (case-sensitive); the 405 handler if none."""
        return self._handlers.get(method, self._fallback)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, request: HTTPRequest) -> ResponseDescriptor:
        """
        Run the handler for a request and normalize the outcome.

        Never raises.
        """
        handler = self.handler_for(request.method)

        try:
            return handler.handle(request)
        except HttpFault as fault:
            return ResponseDescriptor(status=fault.status, body=fault.body)
        except Exception as exc:
            fault = InternalFault.from_exception(exc)
            logger.exception(
                f"{request.method} {request.url} failed: {fault.description}"
            )
            return ResponseDescriptor(status=500, body=fault.description)

    __call__ = dispatch

    # =========================================================================
    # EMISSION
    # =========================================================================

    def build_response(
        self,
        descriptor: ResponseDescriptor,
        request: HTTPRequest,
        keep_alive: bool = True,
    ) -> HTTPResponse:
        """
        Convert a descriptor into a wire-level HTTPResponse.

        A streamed body on HTTP/1.0 has no length framing, so it forces the
        connection closed.
        """
        headers = {"Content-Type": descriptor.content_type or DEFAULT_CONTENT_TYPE}
        headers.update(descriptor.headers)

        body = descriptor.body
        if body is None:
            body = b""
        elif isinstance(body, str):
            body = body.encode("utf-8", "surrogateescape")

        head_only = request.method == "HEAD"
        chunked = request.version == "HTTP/1.1"

        if descriptor.is_stream and not chunked and not head_only:
            keep_alive = False

        headers["Connection"] = "keep-alive" if keep_alive else "close"

        return HTTPResponse(
            status=descriptor.status,
            headers=headers,
            body=body,
            version=request.version,
            chunked=chunked,
            head_only=head_only,
        )

    def emit(
        self,
        descriptor: ResponseDescriptor,
        request: HTTPRequest,
        conn: Connection,
        keep_alive: bool = True,
    ) -> bool:
        """
        Write a descriptor to the connection.

        Returns:
            Whether the connection may carry another request.

        Raises:
            OSError: The client went away, or the file stream failed
                after the header section was sent.
        """
        response = self.build_response(descriptor, request, keep_alive)

        try:
            conn.send_head(response.head_bytes(self.server_name))
            conn.send_stream(response.iter_body())
        finally:
            response.close()

        return response.headers["Connection"] == "keep-alive"

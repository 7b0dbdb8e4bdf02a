"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request on the "fileserver.access" logger, in either
combined-log style text or JSON:

    text:
        127.0.0.1 - - [17/Oct/2026:12:00:00 +0000] "GET /notes.txt" 200 - 1.42ms
    json:
        {"request_id": "3f9a1c2e", "method": "GET", "path": "/notes.txt", ...}

Streamed bodies (file downloads) are logged with size "-": the length is
only known after the stream has been sent, which happens after the
middleware chain has returned.

Route the access log independently of the application log:

    logging.getLogger("fileserver.access").addHandler(file_handler)

=============================================================================
"""

import json
import time
import uuid
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from ..handlers.base import ResponseDescriptor
from ..http.request import HTTPRequest
from .base import Middleware, NextHandler


logger = logging.getLogger("fileserver.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        size = "-" if self.content_length is None else self.content_length
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{size} {self.duration_ms:.2f}ms'
        )


def body_length(descriptor: ResponseDescriptor) -> Optional[int]:
    """Length of a buffered body in bytes; None for streams."""
    body = descriptor.body
    if body is None:
        return 0
    if isinstance(body, str):
        return len(body.encode("utf-8", "surrogateescape"))
    if isinstance(body, bytes):
        return len(body)
    return None


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it first so it times the whole chain.

    Args:
        log_format: "text" or "json".
        include_request_id: Echo the request id as X-Request-ID.
        log_level: Level for access log records.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> ResponseDescriptor:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        descriptor = next(request)

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.query,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=descriptor.status,
            content_length=body_length(descriptor),
            duration_ms=(time.time() - start_time) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            descriptor.headers["X-Request-ID"] = request_id

        return descriptor

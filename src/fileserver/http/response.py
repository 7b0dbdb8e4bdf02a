"""
=============================================================================
HTTP RESPONSE SERIALIZATION
=============================================================================

Turns a status, headers and a body into bytes on the wire.

=============================================================================
BUFFERED VS STREAMED BODIES
=============================================================================

A body is either a buffer we already hold (a directory listing, an error
message) or a lazy stream (a file being read chunk by chunk). The two are
delimited differently:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │  Buffer      │  Content-Length: 27                                  │
    │              │  \r\n                                                │
    │              │  <27 bytes>                                          │
    ├──────────────┼──────────────────────────────────────────────────────┤
    │  Stream      │  Transfer-Encoding: chunked                          │
    │  (HTTP/1.1)  │  \r\n                                                │
    │              │  10000\r\n <65536 bytes> \r\n                        │
    │              │  3e8\r\n <1000 bytes> \r\n                           │
    │              │  0\r\n\r\n                                           │
    ├──────────────┼──────────────────────────────────────────────────────┤
    │  Stream      │  Connection: close                                   │
    │  (HTTP/1.0)  │  \r\n                                                │
    │              │  <bytes until the server closes the socket>          │
    └──────────────┴──────────────────────────────────────────────────────┘

A stream never gets a Content-Length, even for a regular file: the file can
change size between stat and read, and a wrong length desynchronizes the
connection for every later request.

1xx, 204 and 304 responses carry neither a body nor body framing headers.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, Optional, Union

from .status_codes import HTTPStatus, body_allowed, reason_phrase


Body = Union[bytes, Iterable[bytes], None]


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be written to a socket.

    Attributes:
        status: Status code (any int; faults may carry arbitrary codes).
        headers: Response header fields, sent in insertion order.
        body: Buffer, lazy byte stream, or None.
        version: Protocol version for the status line.
        chunked: Frame a streamed body with chunked transfer coding.
            When False a stream is close-delimited.
        head_only: Send the header section only (responses to HEAD).
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Body = b""
    version: str = "HTTP/1.1"
    chunked: bool = True
    head_only: bool = False

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    @property
    def is_streaming(self) -> bool:
        return self.body is not None and not isinstance(self.body, (bytes, bytearray))

    @property
    def has_body(self) -> bool:
        return body_allowed(self.status)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = "fileserver/1.0") -> bytes:
        """
        Serialize the status line and header section.

        Framing headers are derived from the body unless already set:

            buffer           → Content-Length: <len>
            stream, chunked  → Transfer-Encoding: chunked
            stream, 1.0      → (none; caller sends Connection: close)
            1xx / 204 / 304  → framing headers removed
        """
        headers = dict(self.headers)

        if not self.has_body:
            headers.pop("Content-Length", None)
            headers.pop("Transfer-Encoding", None)
        elif self.is_streaming:
            headers.pop("Content-Length", None)
            if self.chunked:
                headers.setdefault("Transfer-Encoding", "chunked")
        else:
            headers.setdefault("Content-Length", str(len(self.body or b"")))

        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("latin-1")

    def iter_body(self) -> Iterator[bytes]:
        """
        Yield the body bytes as they go on the wire, framing included.

        Nothing is yielded for HEAD or for statuses that forbid a body.
        """
        if self.head_only or not self.has_body or self.body is None:
            return

        if not self.is_streaming:
            if self.body:
                yield bytes(self.body)
            return

        for chunk in self.body:
            if not chunk:
                continue
            if self.chunked:
                yield b"%x\r\n" % len(chunk) + chunk + b"\r\n"
            else:
                yield chunk

        if self.chunked:
            yield b"0\r\n\r\n"

    def to_bytes(self, server_name: str = "fileserver/1.0") -> bytes:
        """Serialize the whole response (consumes a streamed body)."""
        return self.head_bytes(server_name) + b"".join(self.iter_body())

    def close(self):
        """Release the body stream, if it holds a resource."""
        close = getattr(self.body, "close", None)
        if callable(close):
            close()


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .text("File not found")
            .close_connection()
            .build())
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Body = b""
        self._version = "HTTP/1.1"

    def status(self, status: int) -> "ResponseBuilder":
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

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """Set a UTF-8 text body."""
        self._body = text.encode("utf-8", "surrogateescape")
        return self.content_type(content_type)

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
            version=self._version,
            chunked=self._version == "HTTP/1.1",
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 9110 §5.6.7).

    Example: "Sat, 17 Oct 2026 12:00:00 GMT". Always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def interim_continue(version: str = "HTTP/1.1") -> bytes:
    """The "100 Continue" interim response sent before reading a body."""
    return f"{version} 100 {reason_phrase(100)}\r\n\r\n".encode("latin-1")


def error_response(
    status: int,
    message: str,
    version: str = "HTTP/1.1",
    close: bool = True,
    content_type: Optional[str] = "text/plain",
) -> HTTPResponse:
    """Plain-text error response, used where no handler ever ran."""
    builder = ResponseBuilder().status(status).version(version).text(
        message, content_type or "text/plain"
    )
    if close:
        builder.close_connection()
    return builder.build()

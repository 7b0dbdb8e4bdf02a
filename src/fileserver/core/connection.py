"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered reads, timeouts and a
graceful close.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever has arrived, not one message:

    Client sends:   "PUT /a.txt HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"

    Server may get: recv() → "PUT /a.txt HT"
                    recv() → "TP/1.1\r\nContent-Length: 5\r\n\r\nhel"
                    recv() → "lo"

So the connection keeps a buffer. read_head() fills it until the blank line
that ends the request head and returns just the head; whatever followed
(the start of the body, or a pipelined request) stays buffered, and
recv_some() serves those bytes before touching the socket again.

    ┌──────────────────────────────────────────────────────────────────┐
    │  _buffer after read_head():   "hel"                              │
    │                                                                  │
    │  body.read(5)  → recv_some(5) → "hel"   (from buffer)            │
    │                → recv_some(2) → "lo"    (from socket)            │
    └──────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
     │         │                          │                     │
     │         │                          │          (next request)
     │         ▼                          ▼                     │
     └──────► CLOSING ◄───────────────────┴─────────────────────┘
                 │
                 ▼
               CLOSED

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple

from ..errors import HTTPParseError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and close handling."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port).
        id: Short identifier used in log lines.
        requests_handled: Requests read so far on this connection.
        response_started: The final response head for the current request
            has been sent; an error can no longer be reported in-band.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0
    response_started: bool = False

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_header_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # READING
    # =========================================================================

    def read_head(self) -> Optional[bytes]:
        """
        Read one request head (request line + header fields).

        Returns:
            The head without its terminating blank line, or None when the
            client closed the connection (or went idle on keep-alive)
            before sending anything.

        Raises:
            HTTPParseError: 431 when the head exceeds max_header_size.
            TimeoutError: The first request did not arrive in time.
            ConnectionError: The client vanished halfway through a head.
        """
        self.state = ConnectionState.READING
        self.response_started = False
        self.last_activity = time.time()

        # ─────────────────────────────────────────────────────────────────
        # KEEP-ALIVE TIMEOUT
        # ─────────────────────────────────────────────────────────────────
        # A client that wants another request sends it promptly; an idle
        # kept-alive connection is closed after the shorter timeout.

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                if len(self._buffer) > self.max_header_size:
                    raise HTTPParseError(
                        f"Request head exceeds {self.max_header_size} bytes",
                        status=431,
                    )

                chunk = self._recv(self.buffer_size)
                if not chunk:
                    if self._buffer.strip():
                        raise ConnectionError("Connection closed mid-request")
                    return None
                self._buffer += chunk

            head_end = self._buffer.find(b"\r\n\r\n")
            if head_end > self.max_header_size:
                raise HTTPParseError(
                    f"Request head exceeds {self.max_header_size} bytes",
                    status=431,
                )

            head = self._buffer[:head_end]
            self._buffer = self._buffer[head_end + 4:]

            self.requests_handled += 1
            self.state = ConnectionState.PROCESSING
            return head

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def recv_some(self, size: int) -> bytes:
        """
        Return up to `size` bytes, buffered bytes first.

        Returns b"" when the peer has closed its side.
        """
        if self._buffer:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
            return data
        return self._recv(size)

    def unread(self, data: bytes):
        """Put bytes back in front of the buffer (read too far)."""
        self._buffer = data + self._buffer

    def _recv(self, size: int) -> bytes:
        try:
            data = self.socket.recv(size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.last_activity = time.time()
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_all(self, data: bytes):
        """
        Send every byte or raise.

        Raises:
            OSError: The client went away (ConnectionResetError,
                BrokenPipeError, timeout).
        """
        self.state = ConnectionState.WRITING
        self.socket.sendall(data)
        self.last_activity = time.time()

    def send_head(self, data: bytes):
        """
        Send the status line and headers of a final response.

        Marked as started before the first byte goes out: after a partial
        write the client can no longer be sent a different response.
        """
        self.response_started = True
        self.send_all(data)

    def send_stream(self, chunks: Iterable[bytes]) -> int:
        """Send an iterable of byte chunks in order. Returns bytes sent."""
        sent = 0
        for chunk in chunks:
            self.send_all(chunk)
            sent += len(chunk)
        return sent

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close gracefully: send FIN, drain what the client still sends,
        then release the descriptor.

        Draining matters when we answer before reading a whole upload
        (403 on a PUT): closing with unread data makes the kernel send
        RST, which can destroy the response before the client reads it.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(self.buffer_size):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.requests_handled} requests"
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

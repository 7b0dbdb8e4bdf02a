"""
=============================================================================
REQUEST BODY STREAM
=============================================================================

A PUT can upload a file far larger than we want to hold in memory, so the
request body is never buffered whole. Instead the handler gets a BodyReader,
a lazy byte stream that pulls from the socket only as it is read.

=============================================================================
MESSAGE FRAMING
=============================================================================

The body length is known one of two ways (RFC 9112 §6):

    Content-Length: 11              Transfer-Encoding: chunked
    \r\n                            \r\n
    hello world                     5\r\n
                                    hello\r\n
                                    6\r\n
                                     world\r\n
                                    0\r\n
                                    \r\n

With Content-Length we count bytes down to zero. With chunked coding we
parse hex size lines, hand out the data in between and stop at the zero
chunk (skipping any trailer fields).

Bytes read past the end of the body belong to the next request on a
keep-alive connection; they are handed back through `pushback`.

=============================================================================
EXPECT: 100-CONTINUE
=============================================================================

Clients such as curl send `Expect: 100-continue` before large uploads and
wait for an interim "100 Continue" before sending the body. `on_first_read`
fires exactly once, right before the first byte is pulled, which is where
the server sends that interim response. A request that is rejected without
touching its body (403, 405) never triggers it.

=============================================================================
"""

import logging
from typing import Callable, Iterator, Optional

from ..errors import HTTPParseError


logger = logging.getLogger(__name__)

# Upper bound for one chunk-size or trailer line
MAX_LINE_LENGTH = 8 * 1024


class BodyReader:
    """
    Lazy reader over a request body.

    Args:
        recv: Returns up to n bytes from the connection, b"" at EOF.
        content_length: Declared body length (ignored when chunked).
        chunked: Body uses chunked transfer coding.
        chunk_size: Default read size for iteration and drain().
        on_first_read: Called once before the first byte is pulled.
        pushback: Receives bytes read past the end of the body.

    Usage:
        for chunk in request.body:
            out.write(chunk)
    """

    def __init__(
        self,
        recv: Callable[[int], bytes],
        content_length: int = 0,
        chunked: bool = False,
        chunk_size: int = 64 * 1024,
        on_first_read: Optional[Callable[[], None]] = None,
        pushback: Optional[Callable[[bytes], None]] = None,
    ):
        self._recv = recv
        self.content_length = content_length
        self.chunked = chunked
        self.chunk_size = chunk_size
        self._on_first_read = on_first_read
        self._pushback = pushback

        self._buffer = b""
        self._remaining = content_length
        self._chunk_remaining = 0
        self._done = not chunked and content_length == 0
        self.started = False
        self.bytes_read = 0

    @classmethod
    def empty(cls) -> "BodyReader":
        """A body with no bytes in it."""
        return cls(lambda n: b"")

    @property
    def exhausted(self) -> bool:
        """True once the whole body has been consumed."""
        return self._done

    # =========================================================================
    # READING
    # =========================================================================

    def read(self, size: int = -1) -> bytes:
        """
        Read up to `size` bytes of body (all remaining bytes if negative).

        Returns b"" once the body is exhausted.

        Raises:
            ConnectionError: The peer closed the connection mid-body.
            HTTPParseError: Malformed chunked framing.
        """
        if size is None or size < 0:
            return b"".join(iter(lambda: self.read(self.chunk_size), b""))
        if size == 0 or self._done:
            return b""

        if not self.started:
            self.started = True
            if self._on_first_read is not None:
                self._on_first_read()

        if self.chunked:
            data = self._read_chunked(size)
        else:
            data = self._read_fixed(size)

        self.bytes_read += len(data)
        if self._done:
            self._release_leftover()
        return data

    def __iter__(self) -> Iterator[bytes]:
        while True:
            data = self.read(self.chunk_size)
            if not data:
                return
            yield data

    def drain(self) -> int:
        """Read and discard the rest of the body. Returns bytes discarded."""
        discarded = 0
        for chunk in self:
            discarded += len(chunk)
        return discarded

    # =========================================================================
    # FRAMING
    # =========================================================================

    def _read_fixed(self, size: int) -> bytes:
        data = self._pull(min(size, self._remaining))
        if not data:
            raise ConnectionError(
                f"Request body ended after {self.bytes_read} "
                f"of {self.content_length} bytes"
            )
        self._remaining -= len(data)
        if self._remaining == 0:
            self._done = True
        return data

    def _read_chunked(self, size: int) -> bytes:
        if self._chunk_remaining == 0:
            self._chunk_remaining = self._read_chunk_size()
            if self._chunk_remaining == 0:
                # Last chunk: skip trailer fields up to the empty line
                while self._readline():
                    pass
                self._done = True
                return b""

        data = self._pull(min(size, self._chunk_remaining))
        if not data:
            raise ConnectionError("Request body ended inside a chunk")
        self._chunk_remaining -= len(data)

        if self._chunk_remaining == 0 and self._readline() != b"":
            raise HTTPParseError("Missing CRLF after chunk data")
        return data

    def _read_chunk_size(self) -> int:
        line = self._readline()
        size_field = line.split(b";", 1)[0].strip()  # drop chunk extensions
        try:
            size = int(size_field, 16)
        except ValueError:
            raise HTTPParseError(f"Invalid chunk size: {size_field!r}")
        if size < 0:
            raise HTTPParseError(f"Invalid chunk size: {size_field!r}")
        return size

    def _readline(self) -> bytes:
        while b"\r\n" not in self._buffer:
            if len(self._buffer) > MAX_LINE_LENGTH:
                raise HTTPParseError("Chunk framing line too long")
            data = self._recv(self.chunk_size)
            if not data:
                raise ConnectionError("Request body ended inside chunk framing")
            self._buffer += data
        line, _, self._buffer = self._buffer.partition(b"\r\n")
        return line

    def _pull(self, size: int) -> bytes:
        if self._buffer:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
            return data
        return self._recv(size)

    def _release_leftover(self):
        if self._buffer and self._pushback is not None:
            self._pushback(self._buffer)
        self._buffer = b""

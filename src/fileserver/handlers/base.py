"""
=============================================================================
HANDLER BUILDING BLOCKS
=============================================================================

Every method handler has the same shape:

    handle(request) ──► ResponseDescriptor        (success, or a mapped
                                                   outcome like 404)
                    ──► raises HttpFault          (e.g. Forbidden)
                    ──► raises anything else      (becomes 500)

A handler never writes to the socket. It describes the response and the
dispatcher emits it, which keeps handlers testable without a network.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Iterator, Optional, Union

from ..http.request import HTTPRequest
from ..resolver import PathResolver


logger = logging.getLogger(__name__)


@dataclass
class ResponseDescriptor:
    """
    What a handler wants sent back.

    Attributes:
        status: HTTP status code.
        body: Text, bytes, a lazy byte stream, or None for no body.
        content_type: MIME type; None means "text/plain" when emitted.
        headers: Extra response headers (middleware adds X-Request-ID).
    """

    status: int = 200
    body: Union[str, bytes, "FileStream", None] = None
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_stream(self) -> bool:
        return self.body is not None and not isinstance(self.body, (str, bytes))


class FileStream:
    """
    Lazy iterator over an open binary file, one chunk at a time.

    Owns the file: it is closed when iteration finishes or close() is
    called, whichever comes first. close() is idempotent.
    """

    def __init__(self, file: BinaryIO, chunk_size: int = 64 * 1024):
        self._file = file
        self.chunk_size = chunk_size
        self.bytes_sent = 0

    @property
    def name(self) -> str:
        return getattr(self._file, "name", "")

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __iter__(self) -> Iterator[bytes]:
        try:
            while True:
                chunk = self._file.read(self.chunk_size)
                if not chunk:
                    return
                self.bytes_sent += len(chunk)
                yield chunk
        finally:
            self.close()

    def close(self):
        if not self._file.closed:
            self._file.close()

    def __repr__(self) -> str:
        return f"FileStream({self.name!r}, chunk_size={self.chunk_size})"


class Handler(ABC):
    """
    Base class for method handlers.

    Args:
        resolver: Maps request URLs to paths under the root directory.
        chunk_size: Read size for file and body streaming.
    """

    def __init__(self, resolver: PathResolver, chunk_size: int = 64 * 1024):
        self.resolver = resolver
        self.chunk_size = chunk_size

    @abstractmethod
    def handle(self, request: HTTPRequest) -> ResponseDescriptor:
        """Serve one request."""

    def __call__(self, request: HTTPRequest) -> ResponseDescriptor:
        return self.handle(request)

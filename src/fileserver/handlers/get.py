"""
GET: read a file, or list a directory.

    GET /notes.txt     → 200, file bytes streamed, Content-Type by extension
    GET /docs          → 200, "a.txt\\nb.txt\\nsub" (listing order, not sorted)
    GET /missing       → 404 "File not found"
    GET /../etc        → 403 "Forbidden" (from the resolver)

The file is opened here, before any response bytes go out, so permission
errors and friends still turn into a proper 500. Only the reading is lazy.

Names in a listing are the raw bytes the filesystem stores, so a name that
is not valid UTF-8 is sent as is rather than failing the response.
"""

import logging
import os
import stat

from ..http import mime_types
from ..http.request import HTTPRequest
from .base import FileStream, Handler, ResponseDescriptor


logger = logging.getLogger(__name__)


class GetHandler(Handler):
    """Serves file contents and directory listings."""

    def handle(self, request: HTTPRequest) -> ResponseDescriptor:
        path = self.resolver.resolve(request.url)

        try:
            st = os.stat(path)
        except FileNotFoundError:
            return ResponseDescriptor(status=404, body="File not found")

        if stat.S_ISDIR(st.st_mode):
            names = os.listdir(os.fsencode(path))
            return ResponseDescriptor(body=b"\n".join(names))

        stream = FileStream(open(path, "rb"), chunk_size=self.chunk_size)
        logger.debug(f"Streaming {path} ({st.st_size} bytes)")
        return ResponseDescriptor(body=stream, content_type=mime_types.lookup(path))

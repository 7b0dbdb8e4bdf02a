"""
PUT: create or overwrite a file with the request body.

    PUT /notes.txt  (body "hello")  → 204, notes.txt now holds "hello"
    PUT /new/dir/a.txt              → 500, parent directories are not created
    PUT /some-directory             → 500 (IsADirectoryError)

The body is copied chunk by chunk in arrival order, so upload size is not
limited by memory. A failure mid-copy leaves whatever was written so far;
there is no cleanup of partial files.
"""

import logging

from ..http.request import HTTPRequest
from .base import Handler, ResponseDescriptor


logger = logging.getLogger(__name__)


class PutHandler(Handler):
    """Stores request bodies as files."""

    def handle(self, request: HTTPRequest) -> ResponseDescriptor:
        path = self.resolver.resolve(request.url)

        written = 0
        with open(path, "wb") as out:
            for chunk in request.body:
                out.write(chunk)
                written += len(chunk)

        logger.debug(f"Stored {written} bytes in {path}")
        return ResponseDescriptor(status=204)

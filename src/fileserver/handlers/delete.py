"""
DELETE: remove a file or an empty directory.

Idempotent: deleting something that is not there is a success (204), so a
retried DELETE never fails just because the first attempt went through.
A non-empty directory is NOT removed recursively; rmdir fails and the
request ends in a 500.
"""

import logging
import os
import stat

from ..http.request import HTTPRequest
from .base import Handler, ResponseDescriptor


logger = logging.getLogger(__name__)


class DeleteHandler(Handler):

    def handle(self, request: HTTPRequest) -> ResponseDescriptor:
        path = self.resolver.resolve(request.url)

        try:
            st = os.stat(path)
        except FileNotFoundError:
            return ResponseDescriptor(status=204)

        if stat.S_ISDIR(st.st_mode):
            os.rmdir(path)
        else:
            os.unlink(path)

        logger.debug(f"Deleted {path}")
        return ResponseDescriptor(status=204)

"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a request URL onto the filesystem and enforces the one security rule
of the server: nothing outside the root directory is reachable.

=============================================================================
ALGORITHM
=============================================================================

    url = "/docs/../notes%20v2.txt?download=1"      root = "/srv/files"

    1. path component      "/docs/../notes%20v2.txt"     (query dropped)
    2. percent-decode      "/docs/../notes v2.txt"       (strict UTF-8)
    3. strip one "/"       "docs/../notes v2.txt"
    4. join onto root      "/srv/files/docs/../notes v2.txt"
    5. normalize           "/srv/files/notes v2.txt"
    6. containment check   starts with "/srv/files/"  → OK

Normalization is lexical: "." and ".." are folded textually and symlinks
are NOT followed. A symlink inside the root that points elsewhere is served.

=============================================================================
THE SEGMENT-BOUNDARY CHECK
=============================================================================

A naive `startswith(root)` is wrong:

    root    = "/srv/files"
    request = "/../files-private/secret"
    result  = "/srv/files-private/secret"    startswith("/srv/files") → True!

The prefix must end on a path separator, so the check is

    result == root  or  result.startswith(root + os.sep)

When the root is the filesystem root ("/"), it already ends in a separator
and is used as the prefix unchanged.

Decoding happens BEFORE normalization, so "%2e%2e" and "%2F" are treated
like their literal forms and get the same containment check.

=============================================================================
"""

import logging
import os
from urllib.parse import unquote, urlsplit

from .errors import Forbidden


logger = logging.getLogger(__name__)


def target_path(url: str) -> str:
    """
    Path component of a request target, still percent-encoded.

    Origin-form targets ("/a/b?q") are split at "?" and "#" only, so a
    leading "//" stays part of the path instead of being read as a host.
    Absolute-form targets ("http://host/a") go through urlsplit.
    """
    if url.startswith("/"):
        return url.split("?", 1)[0].split("#", 1)[0]
    return urlsplit(url).path


class PathResolver:
    """
    Resolves request URLs to absolute paths under a fixed root.

    Args:
        root_dir: Directory to confine access to. Made absolute and
            normalized once; never changes afterwards.

    Example:
        >>> resolver = PathResolver("/srv/files")
        >>> resolver.resolve("/a/b.txt")
        '/srv/files/a/b.txt'
        >>> resolver.resolve("/../etc/passwd")
        Traceback (most recent call last):
            ...
        fileserver.errors.Forbidden: Forbidden
    """

    def __init__(self, root_dir: str):
        self._root = os.path.normpath(os.path.abspath(root_dir))
        if self._root.endswith(os.sep):
            self._prefix = self._root
        else:
            self._prefix = self._root + os.sep

    @property
    def root(self) -> str:
        return self._root

    def resolve(self, url: str) -> str:
        """
        Resolve a request URL to an absolute path inside the root.

        Args:
            url: Request target, e.g. "/dir/file.txt?x=1".

        Returns:
            Absolute normalized path, equal to the root or beneath it.

        Raises:
            Forbidden: The path escapes the root directory.
            UnicodeDecodeError: Percent-escapes that are not valid UTF-8.
        """
        path = unquote(target_path(url), encoding="utf-8", errors="strict")

        relative = path[1:] if path.startswith("/") else path
        resolved = os.path.normpath(os.path.join(self._root, relative))

        if not self.is_contained(resolved):
            logger.warning(f"Forbidden path outside root: {url!r} -> {resolved}")
            raise Forbidden()

        return resolved

    def is_contained(self, path: str) -> bool:
        """True if an absolute path is the root or lies beneath it."""
        path = os.path.normpath(path)
        return path == self._root or path.startswith(self._prefix)

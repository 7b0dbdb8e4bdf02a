"""
=============================================================================
fileserver
=============================================================================

A minimal HTTP file server over one directory tree:

    GET     file contents, or a newline-separated directory listing
    PUT     create or overwrite a file with the request body
    DELETE  remove a file or an empty directory (idempotent)
    other   405 Method Not Allowed

Every path is confined to the root directory; anything that resolves
outside it is answered with 403.

    from fileserver import FileServer, ServerConfig

    FileServer(ServerConfig(root_dir="/srv/files")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .dispatcher import Dispatcher
from .errors import FileServerError, Forbidden, HttpFault, InternalFault
from .resolver import PathResolver
from .server import FileServer, create_server

__all__ = [
    "Dispatcher",
    "FileServer",
    "FileServerError",
    "Forbidden",
    "HttpFault",
    "InternalFault",
    "PathResolver",
    "ServerConfig",
    "__version__",
    "create_server",
]

"""
=============================================================================
METHOD HANDLERS
=============================================================================

One class per supported HTTP method, plus the fallback:

    ┌──────────┬─────────────────────────┬───────────────────────────────┐
    │ Method   │ Handler                 │ Outcome                       │
    ├──────────┼─────────────────────────┼───────────────────────────────┤
    │ GET      │ GetHandler              │ 200 file / listing, 404       │
    │ PUT      │ PutHandler              │ 204                           │
    │ DELETE   │ DeleteHandler           │ 204 (also when missing)       │
    │ other    │ MethodNotAllowedHandler │ 405 "Method X not allowed."   │
    └──────────┴─────────────────────────┴───────────────────────────────┘

All of them resolve paths through the shared PathResolver, so a path
outside the root fails with 403 before any filesystem call.

=============================================================================
"""

from .base import FileStream, Handler, ResponseDescriptor
from .delete import DeleteHandler
from .fallback import MethodNotAllowedHandler
from .get import GetHandler
from .put import PutHandler

__all__ = [
    "DeleteHandler",
    "FileStream",
    "GetHandler",
    "Handler",
    "MethodNotAllowedHandler",
    "PutHandler",
    "ResponseDescriptor",
]

"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Static extension → MIME type lookup used for the Content-Type of files
served by GET.

    lookup("notes.txt")     → "text/plain"
    lookup("photo.JPG")     → "image/jpeg"      (extension match is case-insensitive)
    lookup("archive.xyz")   → None              (unmapped)
    lookup("Makefile")      → None              (no extension)

An unmapped extension yields None rather than a guess. The dispatcher then
falls back to "text/plain" when it writes the response headers.

=============================================================================
"""

import os
from typing import Optional


# Keys are lowercase extensions including the dot.
MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".text": "text/plain",
    ".log": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".tsv": "text/tab-separated-values",
    ".ics": "text/calendar",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",

    # Structured data
    ".json": "application/json",
    ".map": "application/json",
    ".xml": "application/xml",
    ".wasm": "application/wasm",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    ".bin": "application/octet-stream",
    ".exe": "application/octet-stream",

    # Source code, served as text
    ".py": "text/x-python",
    ".c": "text/x-c",
    ".h": "text/x-c",
    ".sh": "application/x-sh",
    ".toml": "application/toml",
}


def lookup(path: str) -> Optional[str]:
    """
    Get the MIME type for a path from its extension.

    Args:
        path: File path or bare file name.

    Returns:
        The MIME type, or None when the extension is not in the table.
    """
    _, extension = os.path.splitext(path)
    if not extension:
        return None
    return MIME_TYPES.get(extension.lower())

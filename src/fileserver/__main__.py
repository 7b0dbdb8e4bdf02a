"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m fileserver                      # serve the current directory
    python -m fileserver --root ./public      # serve another directory
    python -m fileserver --port 0             # any free port
    fileserver --host 0.0.0.0 -w 32           # console script

Flags override FILESERVER_* environment variables, which override the
built-in defaults.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .server import FileServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Serve a directory over HTTP: GET reads, PUT writes, DELETE removes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fileserver                          # Serve the working directory on :8000
  fileserver --root /srv/files        # Serve another directory
  fileserver --port 0                 # Let the OS pick a port
  fileserver --log-format json        # JSON access log
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8000, 0 = any free port)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        dest="root_dir",
        default=None,
        help="Directory to serve (default: current directory)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        dest="max_workers",
        type=int,
        default=None,
        help="Maximum worker threads (default: 16)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=list(LOG_FORMATS),
        default=None,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env(**vars(args))
        server = FileServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        server.run(banner=True)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

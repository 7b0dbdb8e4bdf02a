"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables of the file server in one dataclass.

Values come from three layers, later ones winning:

    ┌────────────────────┐    ┌────────────────────┐    ┌──────────────────┐
    │  Dataclass default │ ─► │  FILESERVER_* env  │ ─► │  CLI flags       │
    │  port=8000         │    │  FILESERVER_PORT=  │    │  --port 9000     │
    │                    │    │  8080              │    │                  │
    └────────────────────┘    └────────────────────┘    └──────────────────┘

The root directory is the only setting that shapes request semantics: it is
captured once, handed to the path resolver, and never changes while the
server runs.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    Development:
        ServerConfig(port=8000, root_dir="./public", log_level="DEBUG")

    Tests (ephemeral port):
        ServerConfig(port=0, root_dir=str(tmp_path))
    """

    # =========================================================================
    # NETWORK SETTINGS
    # =========================================================================

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" exposes the tree to the whole network."""

    port: int = 8000
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Queued connections the kernel holds before refusing new ones."""

    buffer_size: int = 8192
    """Bytes requested per recv() while reading a request head."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds. Bounds how long a stalled client holds a
    worker. None disables it.
    """

    # =========================================================================
    # HTTP SETTINGS
    # =========================================================================

    keep_alive: bool = True
    """Reuse connections for several requests when the client allows it."""

    keep_alive_timeout: float = 5.0
    """Idle time allowed between requests on a kept-alive connection."""

    max_header_size: int = 64 * 1024
    """Largest accepted request head. Bigger heads get 431."""

    # =========================================================================
    # FILE SETTINGS
    # =========================================================================

    root_dir: str = field(default_factory=os.getcwd)
    """
    Directory exposed over HTTP. Every resolved path is this directory or
    lies beneath it. Defaults to the working directory at launch.
    """

    chunk_size: int = 64 * 1024
    """Bytes per read when streaming file contents and upload bodies."""

    # =========================================================================
    # THREADING SETTINGS
    # =========================================================================

    min_workers: int = 4
    max_workers: int = 16

    # =========================================================================
    # LOGGING
    # =========================================================================

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (combined-log style) or 'json'."""

    server_name: str = "fileserver/1.0"
    """Value of the Server response header."""

    def __post_init__(self):
        self.root_dir = os.path.abspath(self.root_dir)

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

            FILESERVER_HOST        Bind address       (default: 127.0.0.1)
            FILESERVER_PORT        Port               (default: 8000)
            FILESERVER_ROOT        Served directory   (default: cwd)
            FILESERVER_WORKERS     Max worker threads (default: 16)
            FILESERVER_TIMEOUT     Socket timeout     (default: 30)
            FILESERVER_LOG_LEVEL   Logging level      (default: INFO)
            FILESERVER_LOG_FORMAT  text or json       (default: text)

        Keyword arguments override the environment (the CLI passes its
        flags this way).
        """
        values = dict(
            host=os.getenv("FILESERVER_HOST", "127.0.0.1"),
            port=int(os.getenv("FILESERVER_PORT", "8000")),
            root_dir=os.getenv("FILESERVER_ROOT") or os.getcwd(),
            max_workers=int(os.getenv("FILESERVER_WORKERS", "16")),
            timeout=float(os.getenv("FILESERVER_TIMEOUT", "30")),
            log_level=os.getenv("FILESERVER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("FILESERVER_LOG_FORMAT", "text"),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        # A small --workers value must not fall below the default minimum
        config.min_workers = min(config.min_workers, config.max_workers)
        return config

    def validate(self) -> None:
        """
        Fail fast on bad settings.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.max_header_size < self.buffer_size:
            raise ValueError("max_header_size must be >= buffer_size")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log_format: {self.log_format!r}. "
                f"Must be one of {', '.join(LOG_FORMATS)}."
            )

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Root directory does not exist: {self.root_dir}")

"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket: create, bind, listen, accept, close. Each
accepted client socket is wrapped in a Connection and handed to a callback;
the callback (FileServer) queues it on the thread pool, so the accept loop
never blocks on request work.

    ┌───────────────────────┐
    │   Listening socket    │  bound once at startup
    └───────────┬───────────┘
                │ accept()
        ┌───────┼────────────────────┐
        ▼       ▼                    ▼
    Connection Connection  ...   Connection     one per client

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Rebind immediately after a restart instead of waiting out
               TIME_WAIT ("Address already in use").
SO_REUSEPORT   Several processes may share the port (where supported).
TCP_NODELAY    Disable Nagle's algorithm; small header writes go out at
               once instead of waiting for more data.

The listening socket has a 1 second timeout so the accept loop wakes up
regularly to notice shutdown().

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown().
Python only allows signal handlers on the main thread, so when the server
runs on a background thread (tests, embedding) they are left alone.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP server.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)    # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None
        self._ready_event = threading.Event()
        self._stop_requested = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        Address actually bound.

        Differs from the configured one when port 0 asked the OS to pick.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        if hasattr(socket, "SO_REUSEPORT"):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                pass

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self):
        """
        Create, bind and listen without accepting yet.

        Separate from start() so callers can learn the bound port first.
        """
        if self._socket is not None:
            return

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        sock.listen(self.config.backlog)
        self._socket = sock
        self._bound_address = sock.getsockname()[:2]

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called. Blocks.

        Args:
            connection_handler: Receives each accepted Connection.
        """
        self.bind()
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while not self._stop_requested.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stop_requested.is_set():
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_header_size=self.config.max_header_size,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"Failed to dispatch connection: {e}")
                conn.close()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)

    def shutdown(self):
        """
        Stop accepting. Safe to call from any thread, more than once.

        A call before start() still counts: start() then returns at once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._stop_requested.set()

    def _cleanup(self):
        self._running = False
        self._restore_signals()

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

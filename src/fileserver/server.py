"""
=============================================================================
FILE SERVER
=============================================================================

Wires the components together and runs the per-connection request loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          FileServer                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer ──accept──► ThreadPool.submit(_process_connection)    │
    │                                           │                          │
    │                                           ▼                          │
    │   ┌──────────── per connection (worker thread) ───────────────────┐  │
    │   │                                                               │  │
    │   │  read_head ─► RequestParser ─► attach BodyReader              │  │
    │   │      ▲                              │                         │  │
    │   │      │                              ▼                         │  │
    │   │      │        MiddlewarePipeline(Dispatcher.dispatch)         │  │
    │   │      │                              │                         │  │
    │   │      │                              ▼                         │  │
    │   │      └── keep-alive ◄── Dispatcher.emit ─► socket             │  │
    │   │                                                               │  │
    │   └───────────────────────────────────────────────────────────────┘  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LEFTOVER REQUEST BODIES
=============================================================================

Some responses are decided without reading the body (403 on a PUT outside
the root, 405 on a POST). Before the connection can carry another request
the unread body has to go:

    body fully read                    → nothing to do
    Expect: 100-continue, not sent     → client never sent the body; close
    read failed halfway                → framing lost; close
    otherwise                          → drain it after the response

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .dispatcher import Dispatcher
from .errors import HTTPParseError, InternalFault
from .http import (
    BodyReader,
    HTTPRequest,
    HTTPStatus,
    RequestParser,
    error_response,
    interim_continue,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline
from .resolver import PathResolver


logger = logging.getLogger(__name__)


class FileServer:
    """
    HTTP file server over one directory tree.

    Usage:
        server = FileServer(ServerConfig(root_dir="/srv/files", port=8000))
        server.run()            # blocks until SIGINT/SIGTERM or shutdown()

    Embedded / tests:
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        host, port = server.address
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser()

        # ─────────────────────────────────────────────────────────────────
        # FILE SERVING
        # ─────────────────────────────────────────────────────────────────

        self.resolver = PathResolver(self.config.root_dir)
        self.dispatcher = Dispatcher(
            self.resolver,
            chunk_size=self.config.chunk_size,
            server_name=self.config.server_name,
        )

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._handler = None
        self._running = False

    def use(self, middleware: Middleware) -> "FileServer":
        """Add middleware inside the access logger. Call before run()."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port when configured with 0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, banner: bool = False):
        """
        Serve until shutdown. Blocks.

        Args:
            banner: Print a startup banner to stdout (used by the CLI).
        """
        self._setup_logging()
        self._handler = self._middleware.wrap(self.dispatcher.dispatch)

        self._socket_server.bind()
        self._thread_pool.start()
        self._running = True

        host, port = self.address
        logger.info(f"Serving {self.resolver.root} on http://{host}:{port}")
        if banner:
            self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running server to stop; run() returns once it has."""
        self._socket_server.shutdown()

    def _print_startup_banner(self):
        host, port = self.address
        print()
        print(f"  {self.config.server_name}")
        print(f"  Root:    {self.resolver.root}")
        print(f"  URL:     http://{host}:{port}/")
        print(f"  Workers: {self.config.min_workers}-{self.config.max_workers} threads")
        print("  Press Ctrl+C to stop")
        print()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fileserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        # Keep-alive loops notice _running on their next request; idle ones
        # finish within keep_alive_timeout.
        self._thread_pool.shutdown(timeout=self.config.keep_alive_timeout + 5)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a freshly accepted connection on the pool."""
        self._thread_pool.submit(self._process_connection, args=(conn,))

    def _process_connection(self, conn: Connection):
        """
        Serve requests on one connection until it closes (worker thread).
        """
        with conn:
            while self._running:
                try:
                    # ─────────────────────────────────────────────────────
                    # READ + PARSE
                    # ─────────────────────────────────────────────────────
                    head = conn.read_head()
                    if head is None:
                        break

                    request = self._parser.parse(head, conn.address)
                    request.body = self._attach_body(request, conn)
                    keep_alive = self.config.keep_alive and request.is_keep_alive

                    # ─────────────────────────────────────────────────────
                    # DISPATCH (handler faults come back as descriptors)
                    # ─────────────────────────────────────────────────────
                    descriptor = self._handler(request)

                    body = request.body
                    if not body.exhausted:
                        if body.started or request.expects_continue:
                            keep_alive = False

                    # ─────────────────────────────────────────────────────
                    # EMIT
                    # ─────────────────────────────────────────────────────
                    if not self.dispatcher.emit(descriptor, request, conn, keep_alive):
                        break

                    if not body.exhausted:
                        try:
                            discarded = body.drain()
                        except HTTPParseError as e:
                            # A response has already gone out; just drop the connection
                            logger.debug(f"[{conn.id}] Bad body after response: {e.body}")
                            break
                        logger.debug(f"[{conn.id}] Discarded {discarded} unread body bytes")

                    conn.set_keep_alive()

                except HTTPParseError as e:
                    logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e.body}")
                    self._send_error(conn, e.status, e.body)
                    break
                except TimeoutError:
                    if not conn.response_started:
                        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Connection dropped: {e}")
                    break
                except Exception as e:
                    # Raised outside dispatch(): middleware, response building
                    # or header encoding
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    if not conn.response_started:
                        fault = InternalFault.from_exception(e)
                        self._send_error(
                            conn, HTTPStatus.INTERNAL_SERVER_ERROR, fault.description
                        )
                    break

    def _attach_body(self, request: HTTPRequest, conn: Connection) -> BodyReader:
        on_first_read = None
        if request.expects_continue:
            def on_first_read():
                conn.send_all(interim_continue(request.version))

        return BodyReader(
            conn.recv_some,
            content_length=request.content_length,
            chunked=request.is_chunked,
            chunk_size=self.config.chunk_size,
            on_first_read=on_first_read,
            pushback=conn.unread,
        )

    def _send_error(self, conn: Connection, status: int, message: str):
        """
        Send a plain-text error for failures outside any handler
        (malformed request, oversized head, read timeout, a fault after
        dispatch). Only valid while no response head has gone out.
        """
        response = error_response(status, message)
        try:
            conn.send_all(response.to_bytes(self.config.server_name))
        except OSError as e:
            logger.debug(f"[{conn.id}] Could not send {status}: {e}")


def create_server(config: Optional[ServerConfig] = None, **overrides) -> FileServer:
    """
    Build a FileServer from a config, or from the environment plus keyword
    overrides when no config is given.

        server = create_server(root_dir="/srv/files", port=0)
    """
    if config is None:
        config = ServerConfig.from_env(**overrides)
    return FileServer(config)

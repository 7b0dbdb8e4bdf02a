"""
pytest configuration and fixtures.
"""

import http.client
import socket
import threading
from typing import Callable, Generator, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, PathResolver, ServerConfig
from fileserver.http import BodyReader, HTTPRequest


@pytest.fixture
def root_dir(tmp_path: Path) -> Path:
    """Empty directory served as the root."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def resolver(root_dir: Path) -> PathResolver:
    return PathResolver(str(root_dir))


def make_request(
    method: str,
    url: str,
    body: bytes = b"",
    version: str = "HTTP/1.1",
    headers: dict = None,
) -> HTTPRequest:
    """Build an HTTPRequest whose body streams from an in-memory buffer."""
    data = bytearray(body)

    def recv(n: int) -> bytes:
        chunk = bytes(data[:n])
        del data[:n]
        return chunk

    return HTTPRequest(
        method=method,
        url=url,
        version=version,
        headers=dict(headers or {}),
        body=BodyReader(recv, content_length=len(body), chunk_size=4),
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def request_factory():
    """Factory for in-memory HTTPRequest objects (see make_request)."""
    return make_request


@pytest.fixture
def config(root_dir: Path) -> ServerConfig:
    """Test server configuration on an ephemeral port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        root_dir=str(root_dir),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


class RunningServer:
    """A FileServer running in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connection(self) -> http.client.HTTPConnection:
        host, port = self.address
        return http.client.HTTPConnection(host, port, timeout=5)

    def request(self, method: str, url: str, body: bytes = None, headers: dict = None):
        """One request on a fresh connection; returns (status, headers, body)."""
        conn = self.connection()
        try:
            conn.request(method, url, body=body, headers=headers or {})
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()

    def raw(self, data: bytes) -> bytes:
        """
        Send raw bytes and read until the server closes the connection.

        For what http.client cannot express: malformed request lines,
        pipelined requests, hand-made chunked bodies.
        """
        with socket.create_connection(self.address, timeout=5) as sock:
            sock.sendall(data)
            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    srv = RunningServer(FileServer(config))
    srv.start()
    yield srv
    srv.stop()


@pytest.fixture
def server_factory() -> Generator[Callable[[FileServer], RunningServer], None, None]:
    """Start a custom-built FileServer; stopped at teardown."""
    started = []

    def start(server: FileServer) -> RunningServer:
        srv = RunningServer(server)
        srv.start()
        started.append(srv)
        return srv

    yield start
    for srv in started:
        srv.stop()

"""
=============================================================================
CORE NETWORKING
=============================================================================

    SocketServer   listening socket, accept loop, signals
    Connection     one client socket: buffered reads, sends, graceful close
    ThreadPool     workers that run one connection each

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Task, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "Task",
    "ThreadPool",
    "Worker",
    "WorkerState",
]

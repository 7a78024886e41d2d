"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Creates, binds and listens on the TCP socket                      │
    │  • Runs the accept() loop on a single thread                         │
    │  • Handles graceful shutdown via signals (SIGTERM, SIGINT)           │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One Connection per accepted socket
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WORKER GROUP                                │
    │  • One daemon thread per connection                                  │
    │  • Never makes the accept loop wait                                  │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Worker owns the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Buffered read_line() / read_exactly() over the socket             │
    │  • write_all() and graceful close()                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .workers import WorkerGroup, ConnectionWorker

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "WorkerGroup",
    "ConnectionWorker",
]

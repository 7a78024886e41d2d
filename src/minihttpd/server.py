"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the components together: accept connections, serve each one on its
own worker thread, and run the keep-alive loop on every connection.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ SocketServer │    │ WorkerGroup  │    │ ResponseComposer │    │
    │    │ (accept)     │    │ (1 thread/   │    │ (Router +        │    │
    │    │              │    │  connection) │    │  handlers)       │    │
    │    └──────────────┘    └──────────────┘    └──────────────────┘    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE CONNECTION LOOP
=============================================================================

Each worker runs _process_connection() for its connection:

    ┌──────────────────┐
    │ AwaitingRequest  │◄─────────────────────────────────────┐
    └────────┬─────────┘                                      │
             │ parse()                                        │
             ├── None (peer closed) ────────────► Closed      │
             ├── MalformedRequest ──────────────► Closed      │ keep-alive
             ├── read error / timeout ──────────► Closed      │
             ▼                                                │
    ┌──────────────────┐                                      │
    │    Composing     │  keep_alive = request.is_keep_alive  │
    └────────┬─────────┘                                      │
             ▼                                                │
    ┌──────────────────┐                                      │
    │     Writing      │── write failed ─────────► Closed      │
    └────────┬─────────┘                                      │
             ├── keep_alive ──────────────────────────────────┘
             └── not keep_alive ─────────────────► Closed

A request that cannot be parsed gets NO response: the connection is
closed without writing a byte. Nothing that goes wrong on one connection
affects any other.

=============================================================================
"""

import logging
import time
from typing import Optional, Tuple

from .access_log import AccessLogger
from .composer import ResponseComposer
from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, WorkerGroup
from .http import HTTPParseError, RequestParser
from .storage import FileStore


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server with persistent connections.

    Usage:
        server = HTTPServer(ServerConfig(port=4221, directory="/tmp/files"))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()

    For tests, run it on a background thread:

        server = HTTPServer(ServerConfig(port=0))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_listening(5.0)
        host, port = server.address
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        file_store: Optional[FileStore] = None,
    ):
        """
        Initialize the HTTP server.

        Args:
            config: Server configuration. Uses defaults if not provided.
            file_store: Storage for /files/. Defaults to the configured
                        directory.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        # Accepts TCP connections on one thread
        self._socket_server = SocketServer(self.config)

        # One worker thread per accepted connection
        self._workers = WorkerGroup(max_workers=self.config.max_connections)

        # Reads HTTPRequest objects from a Connection; stateless, shared
        self._parser = RequestParser(max_body_size=self.config.max_body_size)

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._composer = ResponseComposer(self.config, file_store=file_store)
        self._access_log = AccessLogger(log_format=self.config.log_format)

        self._running = False
        self._stopping = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def address(self) -> Tuple[str, int]:
        """The (host, port) the server is bound to."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def composer(self) -> ResponseComposer:
        return self._composer

    @property
    def workers(self) -> WorkerGroup:
        return self._workers

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Returns after shutdown() is called or SIGINT/SIGTERM is received
        (signals only when running on the main thread).
        """
        self._running = True
        self._stopping = False
        self._setup_logging()

        self._workers.start()

        host, port = self.address
        logger.info(f"Starting HTTP server on {host}:{port}")
        if self.config.directory:
            logger.info(f"Serving files from {self.config.directory}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is ready. False on timeout."""
        return self._socket_server.wait_until_listening(timeout)

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("minihttpd").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        1. Stop accepting new connections (socket server is already out of
           its accept loop when we get here)
        2. Stop spawning workers and give live ones a moment to finish
        """
        logger.info("Shutting down server...")
        self._running = False
        self._stopping = True

        self._workers.shutdown(wait=True, timeout=5.0)

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to its own worker thread.

        Called by SocketServer on the accept thread; returns immediately.
        """
        if not self._workers.spawn(self._process_connection, conn):
            # Over the connection cap (or shutting down): drop it unanswered
            logger.warning(f"[{conn.id}] Rejecting connection from {conn.client_ip}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve one connection until it closes (runs in a worker thread).

        Args:
            conn: The client connection. Always closed on return.
        """
        with conn:  # Context manager ensures connection is closed
            try:
                self._connection_loop(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

    def _connection_loop(self, conn: Connection):
        while True:
            # ─────────────────────────────────────────────────────────────
            # READ REQUEST
            # ─────────────────────────────────────────────────────────────
            try:
                request = self._parser.parse(conn)
            except HTTPParseError as e:
                logger.warning(f"[{conn.id}] Malformed request, closing: {e}")
                return
            except (OSError, ValueError) as e:
                # Reset, timeout, truncated body or oversized line
                logger.warning(f"[{conn.id}] Read failed, closing: {e}")
                return

            if request is None:
                logger.debug(f"[{conn.id}] Peer closed the connection")
                return

            started_at = time.time()

            # ─────────────────────────────────────────────────────────────
            # COMPOSE RESPONSE
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.PROCESSING
            keep_alive = request.is_keep_alive and not self._stopping
            response = self._composer.compose(request, keep_alive)

            # ─────────────────────────────────────────────────────────────
            # SEND RESPONSE
            # ─────────────────────────────────────────────────────────────
            if not conn.write_all(response.to_bytes(self.config.server_name)):
                return

            self._access_log.log(conn, request, response, keep_alive, started_at)

            # ─────────────────────────────────────────────────────────────
            # KEEP-ALIVE OR CLOSE
            # ─────────────────────────────────────────────────────────────
            if not keep_alive:
                return

            conn.set_keep_alive()


def create_app(
    config: Optional[ServerConfig] = None,
    file_store: Optional[FileStore] = None,
) -> HTTPServer:
    """
    Create an HTTP server.

    Example:
        app = create_app(ServerConfig(port=4221, directory="/tmp/files"))
        app.run()
    """
    return HTTPServer(config, file_store=file_store)

"""
=============================================================================
SOCKET SERVER
=============================================================================

The TCP layer: create the listening socket, accept connections, hand each
one off, and shut down cleanly.

=============================================================================
SERVER SOCKET LIFECYCLE
=============================================================================

    socket() ──► setsockopt() ──► bind() ──► listen() ──► accept() loop
                                                              │
                                                              ▼
                                                 Connection(client_socket)
                                                              │
                                                              ▼
                                                  connection_handler(conn)

The accept loop runs on ONE thread and never does request work itself:
connection_handler() must return quickly (the HTTP server starts a worker
thread and returns).

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR  Rebind right after a restart, even with sockets in TIME_WAIT
SO_REUSEPORT  Same, on platforms that have it
TCP_NODELAY   Send small responses immediately (no Nagle delay)

accept() uses a 1 second timeout so the loop notices shutdown() promptly.
An accept() error while running is logged and the loop carries on; when
the process is out of file descriptors it backs off briefly first.

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
import time
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

# accept() errors that mean the process is out of file descriptors
_FD_EXHAUSTED = (errno.EMFILE, errno.ENFILE)
_FD_EXHAUSTED_BACKOFF = 0.1


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, buffer sizes).

        The socket is created in start(), not here.
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._listening = threading.Event()
        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Before start() this is the configured address; afterwards it is
        the real one, so port 0 resolves to the port the OS picked.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            pass  # Not available on this platform

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Poll the running flag once a second
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that trigger shutdown().

        Python only allows signal handlers on the main thread. When the
        server runs elsewhere (tests, embedding), the caller stops it with
        shutdown() instead.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown().

        Args:
            connection_handler: Called on the accept thread with each new
                                Connection. Must not block.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._listening.set()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() clears the running flag.

        Each accepted socket is wrapped in a Connection and passed on at
        once. Neither a failing accept() nor a failing handler stops the
        loop; only shutdown() does.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break  # Listening socket closed by shutdown
                if e.errno in _FD_EXHAUSTED:
                    logger.error(f"Accept error, out of file descriptors: {e}")
                    time.sleep(_FD_EXHAUSTED_BACKOFF)
                else:
                    # One client's failed handshake, the next accept is unaffected
                    logger.warning(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_line_size=self.config.max_line_size,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                logger.exception(f"[{conn.id}] Failed to dispatch connection: {e}")
                conn.close()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._listening.wait(timeout)

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from a signal handler or another thread, and more
        than once. The accept loop exits within about a second.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._listening.clear()
        logger.info("Socket server stopped")

"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the two read primitives
the HTTP parser needs, plus a write primitive and a graceful close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A request sent as

    GET /echo/abc HTTP/1.1\r\n
    Host: localhost\r\n
    \r\n

may arrive in any number of recv() chunks:

    First recv():  b"GET /echo/a"
    Second recv(): b"bc HTTP/1.1\r\nHost: local"
    Third recv():  b"host\r\n\r\n"

and a single recv() may also contain the END of one request and the START
of the next one (a client that sends its second request right after
reading the first response).

So the Connection keeps a private receive buffer and offers:

    read_line()      → bytes up to the next line terminator
    read_exactly(n)  → exactly n bytes, wherever they fall

Both take from the buffer first and only call recv() when the buffer does
not hold enough data. Bytes that belong to the next request stay in the
buffer for the next read_line() call.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Used for logging and to make close() idempotent.
    """
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Reading request data
    PROCESSING = "processing"  # Request parsed, composing the response
    WRITING = "writing"        # Sending response bytes
    KEEP_ALIVE = "keep_alive"  # Response sent, waiting for next request
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── read_line(): one CRLF-terminated line                        │
    │     └── read_exactly(n): a body of known length                      │
    │     └── _buffer carries leftover bytes between requests              │
    │                                                                      │
    │  2. WRITING                                                          │
    │     └── write_all(): the whole response in one sendall()             │
    │                                                                      │
    │  3. STATE TRACKING                                                   │
    │     └── state, requests_handled, last_activity (for logs)            │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── shutdown(SHUT_WR), drain, close()                            │
    │     └── Safe to call more than once                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier (for logging).
        state: Current connection state.
        created_at: Timestamp when connection was accepted.
        last_activity: Timestamp of last read or write.
        requests_handled: Number of responses written on this connection.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    timeout: Optional[float] = None
    max_line_size: int = 64 * 1024

    # Internal state (not shown in repr for cleaner logs)
    _buffer: bytes = field(default=b"", repr=False)
    _eof: bool = field(default=False, repr=False)

    def __post_init__(self):
        """Configure the socket: blocking, with the optional read timeout."""
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES: Convenient accessors
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return "-"

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING: Lines and exact-length bodies
    # =========================================================================

    def read_line(self) -> Optional[bytes]:
        """
        Read one line from the connection.

        The line terminator is CRLF; a bare LF is accepted too. The
        terminator is not part of the returned bytes.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    read_line() Outcomes                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   b"GET / HTTP/1.1\r\n"   →  b"GET / HTTP/1.1"                  │
        │   b"\r\n"                 →  b""     (blank line)               │
        │   b"Host: x" + EOF        →  b"Host: x"  (partial final line)   │
        │   EOF, nothing buffered   →  None    (end of stream)            │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            The line without its terminator, or None at end of stream.

        Raises:
            ValueError: If the line grows past max_line_size.
            OSError: On socket errors other than a peer reset.
        """
        self.state = ConnectionState.READING

        while True:
            newline = self._buffer.find(b"\n")
            if newline != -1:
                line = self._buffer[:newline]
                self._buffer = self._buffer[newline + 1:]
                if line.endswith(b"\r"):
                    line = line[:-1]
                return line

            if len(self._buffer) > self.max_line_size:
                raise ValueError(f"Line too long: more than {self.max_line_size} bytes")

            if not self._fill():
                # Peer closed: hand back whatever is left, then signal EOF
                if not self._buffer:
                    return None
                line, self._buffer = self._buffer, b""
                if line.endswith(b"\r"):
                    line = line[:-1]
                return line

    def read_exactly(self, n: int) -> bytes:
        """
        Read exactly n bytes, ignoring line structure.

        Args:
            n: Number of bytes to read (0 returns b"" immediately).

        Returns:
            Exactly n bytes.

        Raises:
            ConnectionError: If the peer closes before n bytes arrive.
        """
        if n <= 0:
            return b""

        self.state = ConnectionState.READING

        while len(self._buffer) < n:
            if not self._fill():
                raise ConnectionError(
                    f"Connection closed after {len(self._buffer)} of {n} body bytes"
                )

        data, self._buffer = self._buffer[:n], self._buffer[n:]
        return data

    def _fill(self) -> bool:
        """
        Append one recv() chunk to the buffer.

        Returns:
            False once the peer has closed (or reset) the connection.
        """
        if self._eof:
            return False

        chunk = self._recv()
        if not chunk:
            self._eof = True
            return False

        self._buffer += chunk
        return True

    def _recv(self) -> bytes:
        """
        Receive data from socket with error handling.

        Returns:
            Received bytes, or empty bytes if connection closed.
        """
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            # Client disconnected abruptly
            return b""

    # =========================================================================
    # WRITING: Send response data to the client
    # =========================================================================

    def write_all(self, data: bytes) -> bool:
        """
        Send the given bytes to the client.

        sendall() blocks until every byte is handed to the kernel, so a
        response is never left half written by this call.

        Args:
            data: Response bytes to send.

        Returns:
            True if send succeeded, False if the connection is lost.
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Mark connection as waiting for its next request."""
        self.requests_handled += 1
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING: Properly terminate the connection
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees end of stream
        2. Drain: discard anything the client still sends, briefly
        3. close(): release the file descriptor

        Calling close() on a closed connection does nothing.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # socket.timeout is an OSError

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    # =========================================================================
    # CONTEXT MANAGER: For use with 'with' statement
    # =========================================================================

    def __enter__(self):
        """
        Context manager entry.

            with conn:
                line = conn.read_line()
                conn.write_all(response)
            # Connection closed here, on every exit path
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions

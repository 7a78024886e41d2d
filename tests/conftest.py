"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Dict, Generator, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttpd import HTTPServer, ServerConfig
from minihttpd.core.connection import Connection
from minihttpd.storage import FileStore


# =============================================================================
# FAKES
# =============================================================================

class FakeSocket:
    """
    Scripted stand-in for a client socket.

    recv() hands out the given chunks in order (split further if a chunk is
    larger than the requested size), then b"" forever. Everything passed to
    sendall() is recorded in `sent`.
    """

    def __init__(self, *chunks: bytes, send_error: Optional[OSError] = None):
        self._chunks: List[bytes] = list(chunks)
        self.sent = b""
        self.send_error = send_error
        self.closed = False
        self.shut_down = False
        self.timeout = None

    def recv(self, size: int) -> bytes:
        if self.closed or not self._chunks:
            return b""
        chunk = self._chunks.pop(0)
        if len(chunk) > size:
            self._chunks.insert(0, chunk[size:])
            chunk = chunk[:size]
        return chunk

    def sendall(self, data: bytes) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent += data

    def setblocking(self, flag: bool) -> None:
        pass

    def settimeout(self, value) -> None:
        self.timeout = value

    def shutdown(self, how: int) -> None:
        self.shut_down = True

    def close(self) -> None:
        self.closed = True


class MemoryFileStore(FileStore):
    """In-memory FileStore with the same error contract as the real one."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self.files: Dict[str, bytes] = dict(files or {})

    def read(self, name: str) -> bytes:
        if name not in self.files:
            raise FileNotFoundError(name)
        return self.files[name]

    def create(self, name: str, data: bytes) -> None:
        if name in self.files:
            raise FileExistsError(name)
        self.files[name] = data


class BrokenFileStore(FileStore):
    """FileStore whose every operation fails with a generic OSError."""

    def read(self, name: str) -> bytes:
        raise OSError("disk on fire")

    def create(self, name: str, data: bytes) -> None:
        raise OSError("disk on fire")


def make_connection(*chunks: bytes, **kwargs) -> Connection:
    """Connection over a FakeSocket that will deliver `chunks`."""
    return Connection(socket=FakeSocket(*chunks), address=("127.0.0.1", 54321), **kwargs)


# =============================================================================
# RAW HTTP CLIENT HELPERS
# =============================================================================

def read_response(reader) -> Tuple[int, Dict[str, str], bytes]:
    """
    Read one response from a socket file (sock.makefile("rb")).

    Returns:
        (status code, lower-cased headers, body)
    """
    status_line = reader.readline()
    if not status_line:
        raise ConnectionError("Connection closed before a response arrived")

    status = int(status_line.split(b" ")[1])

    headers: Dict[str, str] = {}
    while True:
        line = reader.readline().rstrip(b"\r\n")
        if not line:
            break
        name, _, value = line.decode("iso-8859-1").partition(":")
        headers[name.strip().lower()] = value.strip()

    body = reader.read(int(headers.get("content-length", "0")))
    return status, headers, body


def parse_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split one serialized response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    headers: Dict[str, str] = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b"12345"
    head = (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        b"Content-Length: %d\r\n"
        b"Connection: close\r\n"
        b"\r\n"
    ) % len(body)
    return head + body


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """Empty directory for /files/."""
    directory = tmp_path / "files"
    directory.mkdir()
    return directory


@pytest.fixture
def config(files_dir: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        directory=str(files_dir),
        log_level="WARNING",
    )


class LiveServer:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connect(self) -> socket.socket:
        """Open a client connection with a 5 second timeout."""
        sock = socket.create_connection(self.address, timeout=5.0)
        return sock


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[LiveServer, None, None]:
    """A running server on a free port, serving files from files_dir."""
    live = LiveServer(HTTPServer(config))
    live.start()

    yield live

    live.stop()

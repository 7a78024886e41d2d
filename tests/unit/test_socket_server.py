"""
Unit tests for the accept loop.
"""

import errno
import socket

from minihttpd.config import ServerConfig
from minihttpd.core.socket_server import SocketServer

from conftest import FakeSocket


class ScriptedListener:
    """
    Listening-socket stand-in whose accept() follows a script.

    Each entry is either an exception to raise or a (socket, address)
    pair to return. Once the script runs out the server is shut down.
    """

    def __init__(self, server: SocketServer, *script):
        self.server = server
        self.script = list(script)
        self.calls = 0

    def accept(self):
        self.calls += 1
        if not self.script:
            self.server.shutdown()
            raise socket.timeout("timed out")
        step = self.script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


class TestAcceptLoop:
    """Tests for SocketServer._accept_loop()."""

    def run_loop(self, *script):
        server = SocketServer(ServerConfig(port=0))
        listener = ScriptedListener(server, *script)
        server._socket = listener
        server._running = True
        accepted = []

        server._accept_loop(accepted.append)

        return listener, accepted

    def test_aborted_handshake_does_not_stop_loop(self):
        """Test that a client aborting before accept leaves later clients served."""
        listener, accepted = self.run_loop(
            ConnectionAbortedError(errno.ECONNABORTED, "Software caused connection abort"),
            (FakeSocket(), ("10.0.0.1", 1000)),
        )

        assert listener.calls == 3
        assert len(accepted) == 1
        assert accepted[0].client_ip == "10.0.0.1"

    def test_fd_exhaustion_backs_off_and_continues(self, monkeypatch):
        """Test that running out of descriptors is survived."""
        monkeypatch.setattr("minihttpd.core.socket_server._FD_EXHAUSTED_BACKOFF", 0)

        listener, accepted = self.run_loop(
            OSError(errno.EMFILE, "Too many open files"),
            OSError(errno.ENFILE, "Too many open files in system"),
            (FakeSocket(), ("10.0.0.2", 2000)),
        )

        assert listener.calls == 4
        assert len(accepted) == 1

    def test_error_after_shutdown_ends_loop(self):
        """Test that an accept error once stopped exits instead of retrying."""
        server = SocketServer(ServerConfig(port=0))

        class ClosedListener:
            calls = 0

            def accept(self):
                ClosedListener.calls += 1
                server.shutdown()
                raise OSError(errno.EBADF, "Bad file descriptor")

        server._socket = ClosedListener()
        server._running = True

        server._accept_loop(lambda conn: None)

        assert ClosedListener.calls == 1

    def test_failing_handler_closes_connection(self):
        """Test that a handler exception closes that connection and goes on."""
        client = FakeSocket()

        def handler(conn):
            raise RuntimeError("boom")

        server = SocketServer(ServerConfig(port=0))
        listener = ScriptedListener(
            server,
            (client, ("10.0.0.3", 3000)),
            (FakeSocket(), ("10.0.0.4", 4000)),
        )
        server._socket = listener
        server._running = True

        server._accept_loop(handler)

        assert client.closed
        assert listener.calls == 3

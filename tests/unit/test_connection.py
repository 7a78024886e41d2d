"""
Unit tests for the buffered client connection.
"""

import pytest

from minihttpd.core.connection import Connection, ConnectionState

from conftest import FakeSocket, make_connection


class TestReadLine:
    """Tests for Connection.read_line()."""

    def test_strips_crlf(self):
        """Test that the CRLF terminator is not returned."""
        conn = make_connection(b"GET / HTTP/1.1\r\nHost: x\r\n")

        assert conn.read_line() == b"GET / HTTP/1.1"
        assert conn.read_line() == b"Host: x"

    def test_bare_lf_accepted(self):
        """Test that a bare LF also ends a line."""
        conn = make_connection(b"first\nsecond\n")

        assert conn.read_line() == b"first"
        assert conn.read_line() == b"second"

    def test_blank_line(self):
        """Test that an empty line comes back as b''."""
        conn = make_connection(b"\r\n")

        assert conn.read_line() == b""

    def test_line_split_across_chunks(self):
        """Test that a line arriving in several recv() chunks is joined."""
        conn = make_connection(b"GET /ec", b"ho/abc HT", b"TP/1.1\r", b"\n")

        assert conn.read_line() == b"GET /echo/abc HTTP/1.1"

    def test_partial_line_at_eof(self):
        """Test that an unterminated final line is still returned."""
        conn = make_connection(b"Host: x")

        assert conn.read_line() == b"Host: x"
        assert conn.read_line() is None

    def test_none_at_eof(self):
        """Test that end of stream with nothing buffered returns None."""
        conn = make_connection()

        assert conn.read_line() is None

    def test_line_too_long(self):
        """Test that a line longer than max_line_size raises ValueError."""
        conn = make_connection(b"x" * 100, max_line_size=16, buffer_size=32)

        with pytest.raises(ValueError):
            conn.read_line()

    def test_leftover_bytes_kept(self):
        """Test that bytes after a line stay buffered for the next read."""
        conn = make_connection(b"line\r\nabc")

        assert conn.read_line() == b"line"
        assert conn.read_exactly(3) == b"abc"


class TestReadExactly:
    """Tests for Connection.read_exactly()."""

    def test_zero_bytes(self):
        """Test that n=0 returns b'' without reading."""
        conn = make_connection()

        assert conn.read_exactly(0) == b""

    def test_reads_across_chunks(self):
        """Test that a body split over several chunks is reassembled."""
        conn = make_connection(b"12", b"34", b"5678")

        assert conn.read_exactly(5) == b"12345"
        assert conn.read_exactly(3) == b"678"

    def test_binary_body_untouched(self):
        """Test that arbitrary bytes, including CRLF, are returned as-is."""
        payload = bytes(range(256))
        conn = make_connection(payload)

        assert conn.read_exactly(256) == payload

    def test_early_eof_raises(self):
        """Test that the stream ending before n bytes raises ConnectionError."""
        conn = make_connection(b"abc")

        with pytest.raises(ConnectionError):
            conn.read_exactly(10)


class TestWriteAndClose:
    """Tests for writing, state tracking and closing."""

    def test_write_all(self):
        """Test that write_all sends every byte."""
        sock = FakeSocket()
        conn = Connection(socket=sock, address=("10.0.0.1", 1234))

        assert conn.write_all(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert sock.sent == b"HTTP/1.1 200 OK\r\n\r\n"
        assert conn.state == ConnectionState.WRITING

    def test_write_failure_returns_false(self):
        """Test that a send error is reported, not raised."""
        sock = FakeSocket(send_error=BrokenPipeError("gone"))
        conn = Connection(socket=sock, address=("10.0.0.1", 1234))

        assert conn.write_all(b"data") is False

    def test_close_is_idempotent(self):
        """Test that close() can be called twice."""
        sock = FakeSocket()
        conn = Connection(socket=sock, address=("10.0.0.1", 1234))

        conn.close()
        conn.close()

        assert conn.is_closed
        assert sock.closed
        assert sock.shut_down

    def test_context_manager_closes(self):
        """Test that leaving a with block closes the connection."""
        sock = FakeSocket()

        with Connection(socket=sock, address=("10.0.0.1", 1234)) as conn:
            assert not conn.is_closed

        assert conn.is_closed
        assert sock.closed

    def test_set_keep_alive_counts_requests(self):
        """Test that set_keep_alive tracks handled requests."""
        conn = make_connection()

        conn.set_keep_alive()
        conn.set_keep_alive()

        assert conn.requests_handled == 2
        assert conn.state == ConnectionState.KEEP_ALIVE

    def test_timeout_applied(self):
        """Test that a configured timeout is set on the socket."""
        sock = FakeSocket()
        Connection(socket=sock, address=("10.0.0.1", 1234), timeout=2.5)

        assert sock.timeout == 2.5

    def test_client_ip(self):
        """Test client_ip accessor."""
        conn = Connection(socket=FakeSocket(), address=("10.0.0.1", 1234))

        assert conn.client_ip == "10.0.0.1"
        assert len(conn.id) == 8

"""
Unit tests for access logging.
"""

import json
import logging
import time

from minihttpd.access_log import AccessLogger
from minihttpd.http.request import HTTPRequest
from minihttpd.http.response import HTTPResponse
from minihttpd.http.status_codes import HTTPStatus

from conftest import make_connection


def sample_exchange():
    request = HTTPRequest(method="GET", target="/echo/abc")
    response = HTTPResponse(status=HTTPStatus.OK, body=b"abc")
    return request, response


class TestAccessLogger:
    """Tests for AccessLogger."""

    def test_build_entry(self):
        """Test that an entry captures the exchange."""
        request, response = sample_exchange()

        entry = AccessLogger().build_entry(
            "abcd1234", "10.0.0.1", request, response, True, time.time()
        )

        assert entry.method == "GET"
        assert entry.target == "/echo/abc"
        assert entry.status_code == 200
        assert entry.content_length == 3
        assert entry.keep_alive is True
        assert entry.duration_ms >= 0

    def test_text_format(self, caplog):
        """Test Apache-style text records."""
        conn = make_connection()
        request, response = sample_exchange()

        with caplog.at_level(logging.INFO, logger="minihttpd.access"):
            AccessLogger().log(conn, request, response, True, time.time())

        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert message.startswith("127.0.0.1 - - [")
        assert '"GET /echo/abc" 200 3' in message
        assert message.endswith(f"conn={conn.id}")

    def test_json_format(self, caplog):
        """Test one JSON object per record."""
        conn = make_connection()
        request, response = sample_exchange()

        with caplog.at_level(logging.INFO, logger="minihttpd.access"):
            AccessLogger(log_format="json").log(conn, request, response, False, time.time())

        record = json.loads(caplog.records[0].getMessage())
        assert record["connection_id"] == conn.id
        assert record["client_ip"] == "127.0.0.1"
        assert record["status_code"] == 200
        assert record["keep_alive"] is False

    def test_disabled_level_emits_nothing(self, caplog):
        """Test that nothing is logged below the logger's level."""
        conn = make_connection()
        request, response = sample_exchange()

        with caplog.at_level(logging.WARNING, logger="minihttpd.access"):
            AccessLogger().log(conn, request, response, True, time.time())

        assert caplog.records == []

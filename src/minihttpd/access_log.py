"""
=============================================================================
ACCESS LOG
=============================================================================

One record per response written, emitted through the "minihttpd.access"
logger.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (Apache style, default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [19/Oct/2026:10:55:36 +0000] "GET /echo/abc" 200 3   │
    │ 0.41ms conn=1a2b3c4d                                               │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (one object per line, for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"connection_id": "1a2b3c4d", "client_ip": "127.0.0.1",            │
    │  "method": "GET", "target": "/echo/abc", "status_code": 200, ...}  │
    └─────────────────────────────────────────────────────────────────────┘

The logger only emits; where records go (stderr, file, aggregator) is
decided by the logging configuration:

    logging.getLogger("minihttpd.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("minihttpd.access")


@dataclass
class AccessLogEntry:
    """
    Structured log entry for one request/response pair.

    content_length is the number of body bytes on the wire (after gzip).
    """

    connection_id: str
    client_ip: str
    method: str
    target: str
    status_code: int
    content_length: int
    duration_ms: float
    keep_alive: bool
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "method": self.method,
            "target": self.target,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "keep_alive": self.keep_alive,
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Format as an Apache-style access log line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms '
            f'conn={self.connection_id}'
        )


class AccessLogger:
    """
    Writes access log records in text or JSON form.

    Usage:
        access = AccessLogger(log_format="json")
        start = time.time()
        ...
        access.log(conn, request, response, keep_alive, start)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" (Apache style) or "json".
            log_level: Level the records are logged at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def build_entry(
        self,
        connection_id: str,
        client_ip: str,
        request: HTTPRequest,
        response: HTTPResponse,
        keep_alive: bool,
        started_at: float,
    ) -> AccessLogEntry:
        return AccessLogEntry(
            connection_id=connection_id,
            client_ip=client_ip,
            method=request.method,
            target=request.target,
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.time() - started_at) * 1000,
            keep_alive=keep_alive,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def log(
        self,
        conn,
        request: HTTPRequest,
        response: HTTPResponse,
        keep_alive: bool,
        started_at: float,
    ) -> None:
        """Emit one record for a response written on `conn`."""
        if not logger.isEnabledFor(self.log_level):
            return

        entry = self.build_entry(
            conn.id, conn.client_ip, request, response, keep_alive, started_at
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

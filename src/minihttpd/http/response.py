"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them to bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  STATUS LINE         HTTP/1.1 200 OK\r\n                            │
    │                                                                      │
    │  HEADERS             Content-Type: text/plain\r\n                   │
    │                      Content-Encoding: gzip\r\n                     │
    │                      Connection: keep-alive\r\n                     │
    │                      Content-Length: 23\r\n  ← bytes AFTER gzip     │
    │                      Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n        │
    │                      Server: minihttpd/1.0\r\n                      │
    │                      \r\n                                           │
    │                                                                      │
    │  BODY                <23 bytes>                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
IMMUTABILITY
=============================================================================

HTTPResponse is a frozen dataclass. Everything a response needs travels
inside it, the (possibly compressed) body included, so composing a
response on one thread can never affect the bytes written by another.
"Changing" a response (for example adding the Connection header) returns
a new HTTPResponse.

Content-Length is never trusted from the caller: to_bytes() always writes
len(body).

=============================================================================
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Dict, Union

from .request import HEADER_ENCODING
from .status_codes import HTTPStatus


def _without_header(headers: Dict[str, str], name: str) -> Dict[str, str]:
    """Copy of headers minus every entry named `name` (any case)."""
    lowered = name.lower()
    return {k: v for k, v in headers.items() if k.lower() != lowered}


def _has_header(headers: Dict[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(k.lower() == lowered for k in headers)


@dataclass(frozen=True)
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder for a more convenient way to construct responses.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Handler returns       with_connection()       to_bytes()
        HTTPResponse   ─────► adds Connection  ─────► serializes ─────► socket
                              (new object)

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def with_header(self, name: str, value: str) -> "HTTPResponse":
        """Return a copy with `name` set to `value`, replacing any case variant."""
        headers = _without_header(self.headers, name)
        headers[name] = value
        return replace(self, headers=headers)

    def with_connection(self, keep_alive: bool) -> "HTTPResponse":
        """
        Return a copy carrying exactly one Connection header.

        Args:
            keep_alive: True for "Connection: keep-alive", False for
                        "Connection: close".
        """
        return self.with_header("Connection", "keep-alive" if keep_alive else "close")

    def to_bytes(self, server_name: str = "minihttpd/1.0") -> bytes:
        """
        Serialize the response to bytes for sending over socket.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n               ← Status line
            Content-Type: text/plain\r\n      ← Caller's headers, in order
            Content-Length: 3\r\n             ← Always len(body)
            Date: Mon, 19 Oct 2026 ...\r\n    ← Added if missing
            Server: minihttpd/1.0\r\n         ← Added if missing
            \r\n                              ← Empty line (separator)
            abc                               ← Body bytes

        =====================================================================

        Args:
            server_name: Value for the Server header, if not already set.

        Returns:
            Complete HTTP response as bytes ready for socket.sendall()
        """
        response_headers = _without_header(self.headers, "Content-Length")

        # Content-Length: always the real byte count, even for an empty body
        response_headers["Content-Length"] = str(len(self.body))

        if not _has_header(response_headers, "Date"):
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if server_name and not _has_header(response_headers, "Server"):
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")

        # Blank line separates headers from body
        lines.append("")

        header_bytes = "\r\n".join(lines).encode(HEADER_ENCODING) + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

    ==========================================================================
    METHOD CHAINING (FLUENT INTERFACE)
    ==========================================================================

    Each method returns `self`, enabling chaining:

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/plain")
            .body(b"abc")
            .build())

    header() replaces a header that differs only by case, so a built
    response never carries the same header name twice.

    ==========================================================================
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS METHODS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the HTTP status code."""
        self._status = status
        return self

    # =========================================================================
    # HEADER METHODS
    # =========================================================================

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """
        Set a single response header.

        Args:
            name: Header name (e.g., "Content-Type")
            value: Header value

        Returns:
            Self for method chaining
        """
        self._headers = _without_header(self._headers, name)
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def content_encoding(self, encoding: str) -> "ResponseBuilder":
        """Set the Content-Encoding header (e.g. "gzip")."""
        return self.header("Content-Encoding", encoding)

    # =========================================================================
    # BODY METHODS
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the response body.

        Args:
            body: Response body (string auto-encoded to UTF-8)
        """
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = bytes(body)
        return self

    def text(self, text: str, content_type: str = "text/plain",
             encoding: str = "utf-8") -> "ResponseBuilder":
        """
        Set a plain text body.

        Content-Type defaults to a bare "text/plain" (no charset parameter).
        """
        self._body = text.encode(encoding)
        return self.content_type(content_type)

    def binary(self, data: bytes,
               content_type: str = "application/octet-stream") -> "ResponseBuilder":
        """Set a raw byte body, served as application/octet-stream by default."""
        self._body = bytes(data)
        return self.content_type(content_type)

    # =========================================================================
    # CONNECTION METHODS
    # =========================================================================

    def keep_alive(self) -> "ResponseBuilder":
        """Set Connection: keep-alive."""
        return self.header("Connection", "keep-alive")

    def close_connection(self) -> "ResponseBuilder":
        """Set Connection: close."""
        return self.header("Connection", "close")

    # =========================================================================
    # BUILD METHODS
    # =========================================================================

    def build(self) -> HTTPResponse:
        """Build and return the HTTPResponse object."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 19 Oct 2026 12:00:00 GMT

    Args:
        dt: Datetime to format (should be UTC).
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Every fixed endpoint answers with one of these. Bodies are empty unless
# one is given.
#
# =============================================================================

def ok(body: bytes = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """Create a 200 OK response."""
    builder = ResponseBuilder().status(HTTPStatus.OK).body(body)
    if content_type:
        builder.content_type(content_type)
    return builder.build()


def created() -> HTTPResponse:
    """Create a 201 Created response with an empty body."""
    return ResponseBuilder().status(HTTPStatus.CREATED).build()


def not_found() -> HTTPResponse:
    """Create a 404 Not Found response with an empty body."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def internal_error() -> HTTPResponse:
    """Create a 500 Internal Server Error response with an empty body."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).build()

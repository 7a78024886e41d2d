"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request at a time from a Connection and turns it into an
immutable HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  REQUEST LINE        POST /files/notes.txt HTTP/1.1\r\n             │
    │                      ─┬── ────────┬─────── ───┬────                  │
    │                    Method       Target      Version                  │
    │                                                                      │
    │  HEADERS             Host: localhost:4221\r\n                       │
    │                      Accept-Encoding: gzip, deflate\r\n             │
    │                      Content-Length: 5\r\n                          │
    │                      \r\n           ← blank line ends headers       │
    │                                                                      │
    │  BODY                hello          ← exactly Content-Length bytes  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING RULES
=============================================================================

1. The request line is split on single spaces. Fewer than three tokens
   (an empty line included) is a malformed request; extra tokens are
   ignored.

2. Header lines split on the FIRST colon. Names are trimmed and
   lower-cased, values are trimmed. Lines without a colon are skipped.
   A repeated header replaces the earlier value.

3. Accept-Encoding is not kept as a header: its comma-separated tokens go
   to HTTPRequest.accepted_encodings instead.

4. The body is exactly Content-Length bytes, read with read_exactly() so a
   body containing CRLF (or arriving in many TCP segments) is never cut
   short. A missing, zero, negative or non-numeric Content-Length means no
   body.

Header bytes are decoded as ISO-8859-1: every byte maps to exactly one
character, so values such as User-Agent survive the round trip back into a
response byte for byte.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple
import re


HEADER_ENCODING = "iso-8859-1"
"""Codec for request lines and header lines (one byte, one character)."""


class HTTPParseError(Exception):
    """
    Raised when an HTTP request cannot be parsed.

    Carries the status code that best describes the problem. The server
    does not send it: a request that cannot be parsed closes the
    connection without a response.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class MalformedRequest(HTTPParseError):
    """The request line is unusable, or the declared body is too large."""


@dataclass(frozen=True)
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    FIELDS
    =========================================================================

        method:             Request method exactly as received ("GET")
        target:             Request target, not URL-decoded ("/echo/abc")
        version:            Protocol version token ("HTTP/1.1")
        headers:            Lower-cased name → trimmed value
        accepted_encodings: Tokens from Accept-Encoding, in order
        body:               Raw body bytes
        path_params:        Captures filled in by the Router
        client_address:     (ip, port) of the peer, for logging

    Requests are never mutated after parsing. The Router hands handlers a
    copy with path_params filled in (dataclasses.replace).

    =========================================================================
    """

    # Core request line components
    method: str
    target: str
    version: str = "HTTP/1.1"

    # Parsed components
    headers: Dict[str, str] = field(default_factory=dict)
    accepted_encodings: Tuple[str, ...] = ()
    body: bytes = b""

    # Router-injected parameters
    path_params: Dict[str, str] = field(default_factory=dict)

    # Metadata
    client_address: tuple = ("", 0)

    # =========================================================================
    # PROPERTIES - Computed values accessed like attributes
    # =========================================================================

    @property
    def path(self) -> str:
        """Alias of target; minihttpd never splits off a query string."""
        return self.target

    @property
    def user_agent(self) -> str:
        """The User-Agent header value, or an empty string."""
        return self.headers.get("user-agent", "")

    @property
    def content_length(self) -> int:
        """The Content-Length as a non-negative int (0 if absent or invalid)."""
        return parse_content_length(self.headers.get("content-length"))

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if the connection should stay open after this response.

        =====================================================================
        KEEP-ALIVE LOGIC
        =====================================================================

            Connection: close      → close after response
            Connection: Close      → close after response
            Connection: keep-alive → keep alive
            (missing)              → keep alive

        Only the literal token "close" (any case) ends the connection.
        The protocol version is not consulted.
        =====================================================================
        """
        return self.headers.get("connection", "").strip().lower() != "close"

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("User-Agent")
        """
        return self.headers.get(name.lower(), default)

    def accepts_encoding(self, token: str) -> bool:
        """Exact, case-sensitive check against the Accept-Encoding tokens."""
        return token in self.accepted_encodings


_CONTENT_LENGTH_PATTERN = re.compile(r"^[+-]?[0-9]+$")


def parse_content_length(value: Optional[str]) -> int:
    """
    Interpret a Content-Length header value.

    Returns:
        The length in bytes, or 0 when the value is missing, negative or
        not a decimal number.
    """
    if value is None:
        return 0
    value = value.strip()
    if not _CONTENT_LENGTH_PATTERN.match(value):
        return 0
    return max(int(value), 0)


class RequestParser:
    """
    Reads HTTP requests from a Connection.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Connection (buffered socket)
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  REQUEST PARSER                                                   │
        ├───────────────────────────────────────────────────────────────────┤
        │                                                                    │
        │  1. read_line() ──────────────────────────────────────────────────►│
        │     │  None? → end of stream, return None                          │
        │     ▼                                                             │
        │  2. Parse Request Line ──────────────────────────────────────────►│
        │     │  < 3 tokens? → MalformedRequest                             │
        │     ▼                                                             │
        │  3. read_line() until blank line ───────────────────────────────►│
        │     │  "name: value" pairs, accept-encoding split out             │
        │     ▼                                                             │
        │  4. read_exactly(Content-Length) ───────────────────────────────►│
        │     │  Too large? → MalformedRequest                              │
        │     ▼                                                             │
        │  5. Build HTTPRequest                                             │
        │                                                                    │
        └───────────────────────────────────────────────────────────────────┘

    The parser holds no per-request state, so one instance is shared by
    every worker thread.

    ==========================================================================
    """

    def __init__(self, max_body_size: int = 10 * 1024 * 1024):
        """
        Initialize the request parser.

        Args:
            max_body_size: Largest Content-Length accepted, in bytes.
        """
        self.max_body_size = max_body_size

    def parse(self, conn) -> Optional[HTTPRequest]:
        """
        Read the next request from the connection.

        Args:
            conn: Anything with read_line() and read_exactly(), normally a
                  core.connection.Connection.

        Returns:
            The parsed request, or None if the peer closed the connection
            before sending a request line.

        Raises:
            MalformedRequest: The request line has fewer than three tokens,
                              or the body is larger than max_body_size.
            ConnectionError: The peer closed the connection mid-body.
            ValueError: A line exceeded the connection's line limit.
        """
        # =====================================================================
        # STEP 1: Request line
        # =====================================================================
        line = conn.read_line()
        if line is None:
            return None

        method, target, version = self._parse_request_line(
            line.decode(HEADER_ENCODING)
        )

        # =====================================================================
        # STEP 2: Headers, up to the blank line (or end of stream)
        # =====================================================================
        header_lines = []
        while True:
            line = conn.read_line()
            if not line:
                break
            header_lines.append(line.decode(HEADER_ENCODING))

        headers, accepted_encodings = self._parse_headers(header_lines)

        # =====================================================================
        # STEP 3: Body
        # =====================================================================
        content_length = parse_content_length(headers.get("content-length"))
        if content_length > self.max_body_size:
            raise MalformedRequest(
                f"Request body too large: {content_length} bytes",
                status_code=413,
            )

        body = conn.read_exactly(content_length)

        return HTTPRequest(
            method=method,
            target=target,
            version=version,
            headers=headers,
            accepted_encodings=accepted_encodings,
            body=body,
            client_address=getattr(conn, "address", ("", 0)),
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Split "METHOD SP target SP version" into its three parts.

        Raises:
            MalformedRequest: If there are fewer than three tokens.
        """
        parts = line.split(" ")
        if len(parts) < 3:
            raise MalformedRequest(f"Invalid request line: {line!r}")

        return parts[0], parts[1], parts[2]

    def _parse_headers(self, lines: list) -> Tuple[Dict[str, str], Tuple[str, ...]]:
        """
        Parse header lines.

        Returns:
            (headers, accepted_encodings). headers never contains
            "accept-encoding".
        """
        headers: Dict[str, str] = {}
        accepted_encodings: Tuple[str, ...] = ()

        for line in lines:
            name, sep, value = line.partition(":")
            if not sep:
                continue  # Not a header line, skip it

            name = name.strip().lower()
            if not name:
                continue
            value = value.strip()

            if name == "accept-encoding":
                accepted_encodings = tuple(
                    token.strip() for token in value.split(",") if token.strip()
                )
                continue

            headers[name] = value

        return headers, accepted_encodings

"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 layer of minihttpd: turning bytes from a Connection into
requests, and responses back into bytes.

=============================================================================
MODULE COMPONENTS
=============================================================================

    request.py       RequestParser: Connection → HTTPRequest
    response.py      HTTPResponse / ResponseBuilder: → bytes
    router.py        Router: (method, target) → handler
    compression.py   GzipEncodingPolicy: Accept-Encoding negotiation
    status_codes.py  HTTPStatus with reason phrases

=============================================================================
HTTP MESSAGE FORMAT (RFC 7230)
=============================================================================

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\r\n            HTTP/1.1 200 OK\r\n
    Header: Value\r\n                 Header: Value\r\n
    \r\n                              \r\n
    [body]                            [body]

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, MalformedRequest
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,             # 200 OK
    created,        # 201 Created
    not_found,      # 404 Not Found
    internal_error, # 500 Internal Server Error
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .compression import GzipEncodingPolicy

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "MalformedRequest",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "not_found",
    "internal_error",

    # Routing
    "Router",
    "Route",

    # Status codes
    "HTTPStatus",

    # Content encoding
    "GzipEncodingPolicy",
]

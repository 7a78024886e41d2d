"""
=============================================================================
ECHO HANDLER
=============================================================================

GET /echo/<text> answers with <text> as a text/plain body.

    GET /echo/abc                          → 200, body "abc"
    GET /echo/abc  + Accept-Encoding: gzip → 200, body gzip("abc"),
                                             Content-Encoding: gzip

The text is taken from the request target exactly as received (no
URL-decoding), and written back byte for byte.

=============================================================================
"""

from typing import Optional

from ..http.compression import GzipEncodingPolicy
from ..http.request import HTTPRequest, HEADER_ENCODING
from ..http.response import HTTPResponse, ResponseBuilder


class EchoHandler:
    """
    Echoes the wildcard part of the target, gzip-encoded when accepted.

    Usage:
        echo = EchoHandler(GzipEncodingPolicy())
        router.get("/echo/*text")(echo.handle)
    """

    def __init__(self, encoding_policy: Optional[GzipEncodingPolicy] = None,
                 param: str = "text"):
        self.encoding_policy = encoding_policy or GzipEncodingPolicy()
        self.param = param

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        text = request.path_params.get(self.param, "")

        response = (ResponseBuilder()
            .text(text, encoding=HEADER_ENCODING)
            .build())

        return self.encoding_policy.negotiate(request, response)

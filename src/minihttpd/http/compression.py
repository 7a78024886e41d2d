"""
=============================================================================
CONTENT ENCODING (gzip)
=============================================================================

Content negotiation for response bodies. Only one coding is supported:
gzip.

=============================================================================
HOW IT WORKS
=============================================================================

1. The parser splits Accept-Encoding into tokens:

       Accept-Encoding: deflate, gzip   →  ("deflate", "gzip")

2. select() looks for the exact token "gzip". Matching is case-sensitive
   and ignores quality values, so "GZIP" or "gzip;q=1" do not match.

3. If gzip is selected, the body is compressed with gzip.compress() and
   the response gains "Content-Encoding: gzip". The body is always
   compressed when gzip is selected, even when empty: the result is a
   valid gzip member that decompresses to the original bytes.

The compressed body lives inside the returned (immutable) response, and
Content-Length is computed from it at serialization time, so the length on
the wire is the compressed byte count.

=============================================================================
"""

import gzip
from typing import Iterable, Optional

from .request import HTTPRequest
from .response import HTTPResponse


GZIP = "gzip"


class GzipEncodingPolicy:
    """
    Chooses and applies the response content coding.

    Usage:
        policy = GzipEncodingPolicy(level=6)
        response = policy.negotiate(request, plain_response)
    """

    def __init__(self, level: int = 6):
        """
        Args:
            level: Compression level (1-9).
                  1 = fastest, least compression
                  6 = balanced (default)
                  9 = slowest, best compression
        """
        self.level = level

    def select(self, accepted_encodings: Iterable[str]) -> Optional[str]:
        """
        Pick the coding to use for a response.

        Returns:
            "gzip" if the client listed it, otherwise None (identity).
        """
        for token in accepted_encodings:
            if token.strip() == GZIP:
                return GZIP
        return None

    def encode(self, body: bytes) -> bytes:
        """Compress body into a standard gzip container."""
        return gzip.compress(body, compresslevel=self.level)

    def negotiate(self, request: HTTPRequest, response: HTTPResponse) -> HTTPResponse:
        """
        Return the response encoded for this client.

        Without an acceptable coding the response is returned unchanged.
        """
        if self.select(request.accepted_encodings) != GZIP:
            return response

        encoded = HTTPResponse(
            status=response.status,
            headers=dict(response.headers),
            body=self.encode(response.body),
            version=response.version,
        )
        return encoded.with_header("Content-Encoding", GZIP)

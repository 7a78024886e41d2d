"""
Stateless endpoints: the root page and the User-Agent echo.
"""

from ..http.request import HTTPRequest, HEADER_ENCODING
from ..http.response import HTTPResponse, ResponseBuilder, ok


def index(request: HTTPRequest) -> HTTPResponse:
    """GET / → 200 with an empty body and no Content-Type."""
    return ok()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """
    GET /user-agent → the client's User-Agent header as the body.

    A request without User-Agent gets an empty text/plain body.
    """
    return (ResponseBuilder()
        .text(request.user_agent, encoding=HEADER_ENCODING)
        .build())

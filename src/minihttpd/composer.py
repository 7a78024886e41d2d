"""
=============================================================================
RESPONSE COMPOSER
=============================================================================

Turns a parsed request into the response to send back.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      compose(request, keep_alive)                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPRequest                                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   Router.handle()  ──► index / echo / user-agent / files / 404      │
    │        │                                                             │
    │        ▼                                                             │
    │   with_connection(keep_alive)   exactly one Connection header       │
    │        │                                                             │
    │        ▼                                                             │
    │   HTTPResponse (immutable, body already encoded)                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The composer is built once per server and shared by all workers. Its only
state is the immutable configuration, the router (never changed after
construction) and the file store.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .handlers import EchoHandler, FileHandler, index, user_agent
from .http.compression import GzipEncodingPolicy
from .http.request import HTTPRequest
from .http.response import HTTPResponse, internal_error
from .http.router import Router
from .storage import DirectoryFileStore, FileStore


logger = logging.getLogger(__name__)


class ResponseComposer:
    """
    Maps requests to responses for the fixed endpoint table.

    Usage:
        composer = ResponseComposer(ServerConfig(directory="/tmp/files"))
        response = composer.compose(request, keep_alive=True)
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        file_store: Optional[FileStore] = None,
        encoding_policy: Optional[GzipEncodingPolicy] = None,
    ):
        """
        Args:
            config: Server configuration (directory, compression level).
            file_store: Storage for /files/. Defaults to a
                        DirectoryFileStore on config.directory.
            encoding_policy: Content coding policy for /echo/.
        """
        self.config = config or ServerConfig()
        self.file_store = file_store or DirectoryFileStore(self.config.directory)
        self.encoding_policy = encoding_policy or GzipEncodingPolicy(
            level=self.config.compression_level
        )
        self.router = self._build_router()

    def _build_router(self) -> Router:
        """Register the endpoint table. Order matters: first match wins."""
        router = Router()

        echo = EchoHandler(self.encoding_policy, param="text")
        files = FileHandler(self.file_store, param="name")

        router.get("/", name="index")(index)
        router.get("/echo/*text", name="echo")(echo.handle)
        router.get("/user-agent", name="user_agent")(user_agent)
        router.get("/files/*name", name="download")(files.download)
        router.post("/files/*name", name="upload")(files.upload)

        return router

    def compose(self, request: HTTPRequest, keep_alive: bool) -> HTTPResponse:
        """
        Build the response for one request.

        Args:
            request: The parsed request.
            keep_alive: Whether the connection stays open after this
                        response. Decides the Connection header.

        Returns:
            The response, carrying exactly one Connection header.
        """
        try:
            response = self.router.handle(request)
        except Exception as e:
            # A handler bug costs this request a 500, not the connection
            logger.exception(f"Handler error for {request.method} {request.target}: {e}")
            response = internal_error()

        return response.with_connection(keep_alive)

"""
=============================================================================
FILE HANDLER
=============================================================================

GET and POST for /files/<name>, backed by a FileStore.

=============================================================================
STATUS MAPPING
=============================================================================

    ┌──────────────────────┬─────────────────────────┬────────────────────┐
    │ Operation            │ Outcome                 │ Response           │
    ├──────────────────────┼─────────────────────────┼────────────────────┤
    │ GET /files/<name>    │ file read               │ 200 octet-stream   │
    │                      │ FileNotFoundError       │ 404, empty body    │
    │                      │ any other OSError       │ 500, empty body    │
    ├──────────────────────┼─────────────────────────┼────────────────────┤
    │ POST /files/<name>   │ file created            │ 201, empty body    │
    │                      │ FileExistsError         │ 404, empty body    │
    │                      │ any other OSError       │ 500, empty body    │
    └──────────────────────┴─────────────────────────┴────────────────────┘

An existing file is never overwritten; a second POST of the same name
answers 404 and leaves the first file untouched.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder,
    created, not_found, internal_error,
)
from ..storage import FileStore


logger = logging.getLogger(__name__)


class FileHandler:
    """
    Serves and stores files by name.

    Usage:
        files = FileHandler(DirectoryFileStore("/tmp/files"))
        router.get("/files/*name")(files.download)
        router.post("/files/*name")(files.upload)
    """

    def __init__(self, store: FileStore, param: str = "name"):
        self.store = store
        self.param = param

    def download(self, request: HTTPRequest) -> HTTPResponse:
        """GET: return the file's bytes as application/octet-stream."""
        name = request.path_params.get(self.param, "")

        try:
            data = self.store.read(name)
        except FileNotFoundError:
            logger.debug(f"File not found: {name!r}")
            return not_found()
        except OSError as e:
            logger.error(f"Failed to read {name!r}: {e}")
            return internal_error()

        return ResponseBuilder().binary(data).build()

    def upload(self, request: HTTPRequest) -> HTTPResponse:
        """POST: store the request body under a new name."""
        name = request.path_params.get(self.param, "")

        try:
            self.store.create(name, request.body)
        except FileExistsError:
            logger.debug(f"File already exists: {name!r}")
            return not_found()
        except OSError as e:
            logger.error(f"Failed to write {name!r}: {e}")
            return internal_error()

        logger.info(f"Created file {name!r} ({len(request.body)} bytes)")
        return created()

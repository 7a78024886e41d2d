"""
=============================================================================
MINIHTTPD - A Small HTTP/1.1 Server With Persistent Connections
=============================================================================

minihttpd serves a fixed set of endpoints over raw sockets, one worker
thread per connection, with HTTP/1.1 keep-alive and gzip content coding.

=============================================================================
ENDPOINTS
=============================================================================

    GET  /                 200, empty body
    GET  /echo/<text>      200, <text> as text/plain (gzip if accepted)
    GET  /user-agent       200, the User-Agent header as text/plain
    GET  /files/<name>     200 application/octet-stream, or 404 / 500
    POST /files/<name>     201 (new file), 404 (exists), or 500
    anything else          404

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttpd)
    ├── server.py            # HTTPServer + the per-connection loop
    ├── composer.py          # ResponseComposer: request → response
    ├── config.py            # ServerConfig dataclass
    ├── storage.py           # FileStore / DirectoryFileStore
    ├── access_log.py        # Access log records
    ├── core/                # Low-level components
    │   ├── socket_server.py # TCP socket handling
    │   ├── connection.py    # Buffered connection wrapper
    │   └── workers.py       # Thread-per-connection workers
    ├── http/                # HTTP protocol components
    │   ├── request.py       # HTTP request parsing
    │   ├── response.py      # HTTP response building
    │   ├── router.py        # URL routing
    │   ├── compression.py   # gzip negotiation
    │   └── status_codes.py  # HTTP status enums
    └── handlers/            # Endpoint handlers
        ├── basic.py         # / and /user-agent
        ├── echo.py          # /echo/<text>
        └── files.py         # /files/<name>

=============================================================================
QUICK START
=============================================================================

    from minihttpd import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=4221, directory="/tmp/files"))
    server.run()

Or from the command line:

    python -m minihttpd --directory /tmp/files

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]

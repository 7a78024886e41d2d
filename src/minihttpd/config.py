"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for minihttpd.

The configuration is an immutable dataclass: it is built once (from code or
from the command line), validated at startup, and then shared read-only by
every worker thread. Nothing in the server mutates it after construction,
so workers can read it without locking.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttpd --directory /tmp/files                │
    │                                                                      │
    │   2. Keyword arguments in code                                      │
    │      └── ServerConfig(port=0, directory=str(tmp_path))             │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server reads no environment variables: its only external inputs are
the listening socket and the files directory.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - max_line_size, max_body_size, max_connections, compression_level

    FILES
    - directory

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 4221
    """The port number to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Number of bytes requested from the socket per recv() call."""

    timeout: Optional[float] = None
    """
    Per-socket read timeout in seconds.
    None blocks indefinitely: an idle keep-alive client holds its worker
    until it sends another request or closes the connection.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 64 * 1024
    """Longest request line or header line accepted, in bytes."""

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length accepted. Larger requests close the connection."""

    max_connections: Optional[int] = None
    """Cap on concurrently served connections. None means unlimited."""

    compression_level: int = 6
    """gzip compression level, 1 (fastest) to 9 (smallest)."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Base directory for /files/ requests.
    When unset, every /files/ request answers 500.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "minihttpd/1.0"
    """Value of the Server response header."""

    def with_overrides(self, **changes) -> "ServerConfig":
        """
        Return a copy of this configuration with some fields replaced.

        Example:
            config = ServerConfig().with_overrides(port=0)
        """
        return replace(self, **changes)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails immediately instead
        of on the first request that needs it.

        Raises:
            ValueError: If any value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_size < 1:
            raise ValueError("max_line_size must be >= 1")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.max_connections is not None and self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")

        if not 1 <= self.compression_level <= 9:
            raise ValueError(
                f"Invalid compression_level: {self.compression_level}. Must be 1-9."
            )

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log_format: {self.log_format}. "
                f"Expected one of {', '.join(LOG_FORMATS)}."
            )

        if (
            self.directory is not None
            and os.path.exists(self.directory)
            and not os.path.isdir(self.directory)
        ):
            raise ValueError(f"directory is not a directory: {self.directory}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Immutable, typed configuration with dataclass(frozen=True)
# 2. Overrides produce a new object (with_overrides), never mutate in place
# 3. Validation at startup (fail-fast)
# =============================================================================

"""
=============================================================================
MINIHTTPD CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:4221, /files/ disabled)
    python -m minihttpd

    # Serve and store files under a directory
    python -m minihttpd --directory /tmp/files

    # Listen on all interfaces, on another port
    python -m minihttpd --host 0.0.0.0 --port 8080

    # JSON access log, verbose
    python -m minihttpd --log-format json --log-level DEBUG

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import HTTPServer
from .config import ServerConfig, LOG_FORMATS


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="minihttpd",
        description="Minimal HTTP/1.1 server with keep-alive and gzip",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttpd                           # Run with defaults
  python -m minihttpd --directory /tmp/files    # Enable /files/
  python -m minihttpd --port 8080               # Custom port
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Directory for GET/POST /files/<name> (default: disabled, 500)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=4221,
        help="Port to listen on (default: 4221)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-connection read timeout in seconds (default: none)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=list(LOG_FORMATS),
        default="text",
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttpd {__version__}"
    )

    return parser


def main(argv=None):
    """Parse arguments, build the server, run it until stopped."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        directory=args.directory,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = HTTPServer(config)
    except ValueError as e:
        parser.error(str(e))  # exits with status 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

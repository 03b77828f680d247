"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:1701, serving ./data)
    python -m fileserver

    # Custom port and root
    python -m fileserver --port 3000 --root ./public

    # Let the OS pick a port
    python -m fileserver --port 0

    # Verbose, JSON access log
    python -m fileserver -d --log-format json

If the preferred port is taken, a random free port is used instead; the
address actually bound is logged at startup.

Exit status: 0 after a graceful shutdown (Ctrl+C / SIGTERM), 1 if the
configuration is invalid or the server cannot start.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .core.errors import FileServerError
from .server import FileServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Minimal HTTP/1.0 file server (GET/HEAD for fileN.html and imageN.jpg)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                       # Run with defaults
  python -m fileserver --port 3000           # Custom port
  python -m fileserver --root ./public       # Serve another directory
  python -m fileserver -d                    # Debug logging
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="IPv4 address to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Preferred port (default: 1701, 0 lets the OS choose)"
    )

    parser.add_argument(
        "--backlog",
        type=int,
        default=None,
        help="Listen backlog (default: 128)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory files are served from (default: data)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Shorthand for --log-level DEBUG"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}"
    )

    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Environment first, then command-line overrides.

    Raises:
        ValueError: A setting (from either source) is invalid.
    """
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.backlog is not None:
        config.backlog = args.backlog
    if args.root is not None:
        config.serve_root = args.root
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.debug:
        config.log_level = "DEBUG"
    if args.log_format is not None:
        config.log_format = args.log_format

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    server = FileServer(config)

    # Blocks until Ctrl+C / SIGTERM
    try:
        server.run()
    except FileServerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

=============================================================================
USAGE
=============================================================================

    # Serve ./www on port 8080, HTTP/1.1 keep-alive
    python -m staticserver -document_root ./www -port 8080

    # Same thing, GNU-style flags
    python -m staticserver --document-root ./www --port 8080

    # HTTP/1.0: one response per connection
    python -m staticserver -d ./www -p 8080 --protocol-version 1.0

    # Log every request line and served file
    python -m staticserver -d ./www -p 8080 --debug-mode true

Both spellings of each flag are accepted: -document_root and
--document-root, --debug_mode and --debug-mode.

=============================================================================
EXIT STATUS
=============================================================================

    0   server stopped (Ctrl+C, SIGTERM, or no clients for --server-timeout)
    1   could not bind the listening socket
    2   bad command line or configuration (argparse convention)

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ConfigError, ServerConfig
from .logs import setup_logging
from .server import StaticServer


PORT_RANGE = (8000, 9999)


def parse_bool(value: str) -> bool:
    """argparse type for "true"/"false" style values."""
    lowered = value.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Static file HTTP server with keep-alive and a sandboxed document root",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver -document_root ./www -port 8080
  python -m staticserver -d ./www -p 8080 --protocol-version 1.0
  python -m staticserver -d ./www -p 8080 --debug-mode true
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUIRED
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "-d", "--document-root", "-document_root",
        dest="document_root",
        required=True,
        help="Directory to serve files from",
    )

    parser.add_argument(
        "-p", "--port", "-port",
        dest="port",
        type=int,
        required=True,
        help=f"Port to listen on ({PORT_RANGE[0]}-{PORT_RANGE[1]})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--protocol-version", "--protocol_version",
        dest="http_version",
        choices=["1.0", "1.1"],
        default="1.1",
        help="HTTP version to speak (default: 1.1)",
    )

    parser.add_argument(
        "--client-timeout",
        type=float,
        default=10.0,
        help="Seconds an idle keep-alive connection is kept open (default: 10)",
    )

    parser.add_argument(
        "--server-timeout",
        type=float,
        default=500.0,
        help="Stop after this many seconds without a new connection; 0 = never (default: 500)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK / DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Address to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )

    parser.add_argument(
        "--debug-mode", "--debug_mode",
        dest="debug",
        type=parse_bool,
        nargs="?",
        const=True,
        default=False,
        help="Log request lines and served files (true/false, default: false)",
    )

    parser.add_argument(
        "--log-file",
        default="logs/server.log",
        help='Log file path; "" to log to the console only (default: logs/server.log)',
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}",
    )

    return parser


def config_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> ServerConfig:
    """
    Translate parsed arguments to a validated ServerConfig.

    Exits through parser.error() (status 2) on any invalid value.
    """
    low, high = PORT_RANGE
    if not low <= args.port <= high:
        parser.error(f"port must be between {low} and {high}, got {args.port}")

    try:
        config = ServerConfig(
            document_root=args.document_root,
            port=args.port,
            host=args.host,
            http_version=args.http_version,
            debug=args.debug,
            idle_timeout=args.client_timeout,
            server_timeout=args.server_timeout or None,
            log_file=args.log_file or None,
        )
        config.validate()
    except ConfigError as e:
        parser.error(str(e))

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = config_from_args(parser, args)

    log = setup_logging(config.log_file, debug=config.debug)
    log.info(f"staticserver {__version__} starting")

    try:
        StaticServer(config, log=log).run()
    except OSError as e:
        log.error(f"Server failed: {e}")
        return 1
    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    sys.exit(main())

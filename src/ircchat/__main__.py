"""
=============================================================================
CHAT SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (localhost:9000)
    python -m ircchat

    # Custom address
    python -m ircchat --host 0.0.0.0 --port 9001

    # Verbose
    python -m ircchat --log-level DEBUG

Environment variables (IRC_HOST, IRC_PORT, IRC_TIMEOUT, IRC_LOG_LEVEL)
provide the defaults; command-line arguments win over them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import ChatServer
from .config import ServerConfig


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ircchat",
        description="Single-room line-based chat server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ircchat                          # localhost:9000
  python -m ircchat --host 0.0.0.0 -p 9001   # all interfaces
        """
    )

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"ircchat {__version__}"
    )

    return parser


def main(argv=None) -> int:
    """
    Parse arguments and run the server until it is stopped.

    Returns:
        Process exit code: 0 after a normal stop, 1 if the server could
        not start.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: bad environment setting: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        timeout=defaults.timeout,
        log_level=args.log_level,
    )

    try:
        server = ChatServer(config)
        server.run()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
=============================================================================
COMMAND LINE INTERFACE
=============================================================================

    python -m httpframe                         # 127.0.0.1:8080
    python -m httpframe --port 3000
    python -m httpframe --config httpframe.yaml
    python -m httpframe --log-level DEBUG

Every connection gets the demo response (201, "hello") and is closed.
=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Merge configuration sources.

    A YAML file (if given) replaces the environment; explicit command-line
    flags override either.
    """
    if args.config:
        config = ServerConfig.from_yaml(args.config)
    else:
        config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="httpframe",
        description="Minimal HTTP/1.1 framer demo server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpframe                        # Run with defaults
  python -m httpframe --port 3000            # Custom port
  python -m httpframe --host 0.0.0.0         # Listen on all interfaces
  python -m httpframe --config server.yaml   # Load a YAML config file
        """,
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)",
    )

    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to a YAML configuration file",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"httpframe {__version__}",
    )

    return parser.parse_args(argv)


def main(argv=None):
    """CLI entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
        server = HTTPServer(config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

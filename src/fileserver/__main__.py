"""
=============================================================================
FILE SERVER CLI ENTRY POINT
=============================================================================

    # Defaults, reading /usr/share/server/config.ini if it exists
    python -m fileserver

    # Explicit config file
    python -m fileserver ./server.ini

    # Override individual settings
    python -m fileserver ./server.ini --port 3000 --root ./public

    # Serve one connection and exit
    python -m fileserver --root ./public --once

Command-line flags win over the config file, which wins over defaults.

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig, load_config, DEFAULT_CONFIG_PATH, LOG_LEVELS
from .server import FileServer


logger = logging.getLogger("fileserver")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Minimal single-connection HTTP/1.1 file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                          # Default config file
  python -m fileserver ./server.ini             # Custom config file
  python -m fileserver --root ./public -p 3000  # Override settings
  python -m fileserver --once                   # Serve one client, exit
        """
    )

    parser.add_argument(
        "config",
        nargs="?",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the INI config file (default: {DEFAULT_CONFIG_PATH})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # OVERRIDES (None = keep the config file's value)
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on")
    parser.add_argument("--root", "-r", default=None, help="Directory to serve files from")
    parser.add_argument("--default-file", "-d", default=None, help="File served for '/'")
    parser.add_argument(
        "--backlog", "-b",
        type=int,
        default=None,
        help="Maximum pending connections"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Serve a single connection, then exit"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Load the config file and apply command-line overrides on top."""
    config = load_config(args.config)

    overrides = {
        "host": args.host,
        "port": args.port,
        "root_directory": args.root,
        "default_file": args.default_file,
        "backlog": args.backlog,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    config.log_level = args.log_level
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit status: 0 on clean shutdown, 1 if the configuration is
        invalid or the listener could not be set up.
    """
    args = parse_args(argv)

    # Configure logging before loading the config so its warnings show up
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = build_config(args)

    try:
        server = FileServer(config)
    except ValueError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    try:
        server.run(once=args.once)
    except OSError as e:
        logger.critical(f"Failed to start server: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

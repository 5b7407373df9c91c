"""Command-line entry point for the log viewer."""

import argparse
import asyncio
import logging
import sys

from . import __version__
from .config import DEFAULT_PORT, ViewerConfig
from .logging_manager import LoggingManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cc-log-viewer",
        description="Claude Code log viewer - Web interface for viewing conversation logs",
    )
    parser.add_argument(
        "projects_dir",
        nargs="?",
        help="Path to projects directory containing log files (defaults to ~/.claude/projects/)",
    )
    parser.add_argument("-p", "--port", type=int, help=f"Port to serve on (default: {DEFAULT_PORT})")
    parser.add_argument("--host", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--log-level", help="Console log level (default: INFO)")
    parser.add_argument(
        "--poll",
        action="store_true",
        help="Poll the file system instead of using native change notifications",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(argv: list[str] | None = None) -> ViewerConfig:
    """Merge command-line arguments over the environment configuration."""
    args = build_parser().parse_args(argv)
    config = ViewerConfig.from_env()
    if args.projects_dir:
        config = ViewerConfig(
            projects_dir=args.projects_dir,
            server_host=config.server_host,
            server_port=config.server_port,
            log_dir=config.log_dir,
            log_level=config.log_level,
            cors_origins=config.cors_origins,
            watch=config.watch,
        )
    if args.port is not None:
        config.server_port = args.port
    if args.host:
        config.server_host = args.host
    if args.log_level:
        config.log_level = args.log_level
    if args.poll:
        config.watch.use_polling = True
    return config


def main(argv: list[str] | None = None) -> int:
    """Validate the projects directory and run the server."""
    config = load_config(argv)

    if not config.projects_dir.is_dir():
        print(f"Projects directory does not exist: {config.projects_dir}", file=sys.stderr)
        print("Tip: Claude Code logs are typically stored in ~/.claude/projects/", file=sys.stderr)
        return 1

    try:
        logging_manager = LoggingManager(log_dir=config.log_dir, log_level=config.log_level)
    except (OSError, ValueError) as e:
        print(f"Failed to configure logging: {e}", file=sys.stderr)
        return 1

    from .server import LogViewerServer

    try:
        server = LogViewerServer(config)
    except OSError as e:
        print(f"Failed to initialize watch manager: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(server.start_server())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        logging_manager.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

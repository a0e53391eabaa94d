"""Entry point for docs-build-mcp server."""

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace

from .config import KNOWN_ENVIRONMENTS, Settings
from .server import create_server, get_executor


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Docs Build MCP Server - Validate documentation repositories via MCP"
    )
    parser.add_argument(
        "--binary",
        type=str,
        default=None,
        help="Path to the build tool executable (overrides DOCS_BUILD_BINARY).",
    )
    parser.add_argument(
        "--workdir",
        type=str,
        default=None,
        help="Working directory of the build tool (overrides DOCS_BUILD_WORKDIR).",
    )
    parser.add_argument(
        "--environment",
        type=str.upper,
        choices=sorted(KNOWN_ENVIRONMENTS),
        default=None,
        help="Deployment environment (overrides DOCS_ENVIRONMENT).",
    )
    parser.add_argument(
        "--phase-timeout",
        type=float,
        default=None,
        help="Kill restore/build after this many seconds. "
        "Default: no timeout, builds run until they exit or are cancelled.",
    )
    parser.add_argument(
        "--verbose-build",
        action="store_true",
        default=False,
        help="Pass --verbose to the build tool.",
    )
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command line overrides applied."""
    settings = Settings.from_env()
    overrides: dict = {}
    if args.binary:
        overrides["binary"] = args.binary
    if args.workdir:
        overrides["working_directory"] = args.workdir
    if args.environment:
        overrides["environment"] = args.environment
    if args.phase_timeout is not None:
        overrides["phase_timeout"] = args.phase_timeout if args.phase_timeout > 0 else None
    if args.verbose_build:
        overrides["debug_mode"] = True
    return replace(settings, **overrides) if overrides else settings


async def main() -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    args = parse_args()
    try:
        settings = load_settings(args)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(
        f"Starting Docs Build MCP Server (binary: {settings.binary}, "
        f"environment: {settings.environment})..."
    )

    mcp = create_server(settings)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        # Don't leave a build running behind
        executor = get_executor()
        if executor.is_running:
            await executor.cancel()
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

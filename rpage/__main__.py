"""Command line entry point.

Usage:
    python -m rpage serve             # Start the API server
    python -m rpage cleanup [--days]  # Run the output retention sweep once
"""

import argparse
import asyncio
import sys
from typing import Optional


async def _cleanup(days: Optional[int]) -> int:
    from rpage.core.config import get_settings
    from rpage.infrastructure.database import dispose_engine, init_db
    from rpage.services import run_retention_sweep

    settings = get_settings()
    try:
        await init_db()
        result = await run_retention_sweep(settings, days)
    finally:
        await dispose_engine()
    print(
        f"Cleaned up {result.deleted} outputs "
        f"({result.non_screenshots_removed} non-screenshots, {result.old_outputs_removed} old outputs)"
    )
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    from rpage import __version__
    from rpage.core.config import get_settings
    from rpage.core.logging import configure_logging

    settings = get_settings()
    parser = argparse.ArgumentParser(prog="rpage", description="Headless browser automation runner")
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default=settings.host, help="Host to bind to (default: %(default)s)")
    serve_parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to (default: %(default)s)")
    serve_parser.add_argument("--reload", action="store_true", default=settings.server.reload, help="Enable auto-reload")

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete non-screenshot and expired outputs")
    cleanup_parser.add_argument("--days", type=int, default=None, help="Retention window (default: keepOutputDays setting)")

    args = parser.parse_args(argv)

    if args.version:
        print(f"rpage {__version__}")
        return 0

    configure_logging(args.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "rpage.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level.lower(),
        )
        return 0

    if args.command == "cleanup":
        if args.days is not None and args.days < 0:
            parser.error("--days must be zero or positive")
        return asyncio.run(_cleanup(args.days))

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)

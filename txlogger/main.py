"""
txlogger command line.

    txlogger init-db                 create the log tables
    txlogger purge [--chunk-size N]  run the retention purge job once
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from txlogger.bootstrap import shutdown, startup
from txlogger.core.config.config import Config
from txlogger.core.logging.logger import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="txlogger", description="Transaction log pipeline tools")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy async URL (default: DATABASE_URL)")
    parser.add_argument("--config-dir", type=Path, default=None, help="YAML settings directory (default: ./config)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create log tables if missing")

    purge = sub.add_parser("purge", help="Delete log records past their retention date")
    purge.add_argument("--chunk-size", type=int, default=None, help=f"Records per chunk (default: {Config.PURGE_CHUNK_SIZE})")
    return parser


async def _run(args: argparse.Namespace) -> int:
    runtime = None
    try:
        runtime = await startup(database_url=args.database_url, config_dir=args.config_dir)

        if args.command == "init-db":
            logger.info("Log tables ready")
            return 0

        chunk_size = args.chunk_size or Config.PURGE_CHUNK_SIZE
        state = await runtime.purge_runner().run(chunk_size)
        print(
            f"Purged {state.total_processed} records "
            f"({state.chunks_succeeded} chunks ok, {state.chunks_failed} failed)"
        )
        return 1 if state.chunks_failed else 0
    finally:
        await shutdown(runtime)


def cli(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as exc:
        logger.critical(
            "Fatal error",
            extra={"error": str(exc), "error_type": type(exc).__name__},
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(cli())

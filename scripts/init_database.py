#!/usr/bin/env python3
"""
Create the downline tables without running migrations.

Intended for local and test databases. Use --stamp so a later
`alembic upgrade head` does not try to create the tables again.
"""

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from loguru import logger  # noqa: E402

from downline.config.database import create_engine, init_models  # noqa: E402

logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database(drop: bool) -> None:
    engine = create_engine(echo=False)
    try:
        if drop:
            logger.warning("Dropping existing downline tables")
        await init_models(engine, drop=drop)
    finally:
        await engine.dispose()
    logger.success("Downline tables ready")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the downline tables")
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables first (destroys all data)",
    )
    parser.add_argument(
        "--stamp",
        action="store_true",
        help="Mark the schema as migrated to the latest alembic revision",
    )
    args = parser.parse_args()

    asyncio.run(init_database(args.drop))

    # Runs outside the event loop: env.py starts its own
    if args.stamp:
        command.stamp(Config(str(ROOT / "alembic.ini")), "head")
        logger.info("Alembic version stamped at head")


if __name__ == "__main__":
    main()

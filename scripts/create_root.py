#!/usr/bin/env python3
"""
Create a program root node and print a bearer token for it.

Usage:
    python scripts/create_root.py --id ROOT_ID --name "Program Root" --email root@example.com
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from downline.config.database import dispose_engine, get_session_maker  # noqa: E402
from downline.config.settings import settings  # noqa: E402
from downline.repositories.sql_record_store import SqlRecordStore  # noqa: E402
from downline.services.identity import TokenIdentityResolver  # noqa: E402
from downline.services.tree import RegistrationService  # noqa: E402
from downline.utils.exceptions import DownlineError  # noqa: E402

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a program root node")
    parser.add_argument("--id", required=True, help="Node id of the root")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--email", required=True, help="Email address")
    parser.add_argument("--phone", default="", help="Phone number")
    return parser.parse_args()


async def create_root(args: argparse.Namespace) -> int:
    store = SqlRecordStore(get_session_maker(), settings.store_max_concurrency)
    registration = RegistrationService(store)

    try:
        node = await registration.create_root(args.id, args.name, args.email, args.phone)
    except DownlineError as e:
        logger.error(f"Root not created: {e}")
        return 1
    finally:
        await dispose_engine()

    logger.success(f"Root {node.id} created with referral code {node.referral_code}")

    if settings.token_secret:
        resolver = TokenIdentityResolver(settings.token_secret, settings.token_ttl_seconds)
        print(resolver.issue(node.id))
    else:
        logger.warning("TOKEN_SECRET not set, no token issued")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(create_root(parse_args())))

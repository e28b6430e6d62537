#!/usr/bin/env python3
"""
Compare nodes' advisory referral lists with their actual children.

Usage:
    python scripts/audit_referrals.py NODE_ID [NODE_ID ...]
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
from downline.services.downline_service import DownlineService  # noqa: E402
from downline.utils.exceptions import NodeNotFoundError  # noqa: E402

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def audit(node_ids: list[str]) -> int:
    store = SqlRecordStore(get_session_maker(), settings.store_max_concurrency)
    service = DownlineService.from_settings(store, settings)
    diverged = 0

    try:
        for node_id in node_ids:
            try:
                result = await service.audit_referrals(node_id)
            except NodeNotFoundError:
                logger.error(f"{node_id}: not found")
                diverged += 1
                continue

            if result.consistent:
                logger.success(f"{node_id}: referral list consistent")
                continue

            diverged += 1
            logger.warning(f"{node_id}: referral list diverges")
            for child_id in result.missing_from_list:
                logger.warning(f"  - missing from list: {child_id}")
            for child_id in result.stale_in_list:
                logger.warning(f"  - listed but not a child: {child_id}")
    finally:
        await dispose_engine()

    return 1 if diverged else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Audit referral lists")
    parser.add_argument("node_ids", nargs="+", help="Node ids to audit")
    sys.exit(asyncio.run(audit(parser.parse_args().node_ids)))

#!/usr/bin/env python3
"""
Script to re-derive every member's materialized path from its links.

This script:
1. Reports members whose stored path disagrees with referrer/parent links
2. With --apply, rewrites every path from the links
3. Members with cyclic or dangling links get no path (readers then walk
   links with a cycle guard)

Usage:
    python scripts/rebuild_member_paths.py --check   # Report only
    python scripts/rebuild_member_paths.py --apply   # Rewrite paths
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from supplynet.services.team.ancestry_service import AncestryService
from supplynet.utils.database import create_engine, create_session_maker
from supplynet.utils.logging import setup_logging


# Configure logger
logger.remove()
logger.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level} | {message}")


async def report_inconsistencies(service: AncestryService) -> int:
    """Log every member whose path disagrees with its links."""
    member_ids = await service.member_repo.find_all_ids()
    inconsistent = 0

    for member_id in member_ids:
        issues = await service.check_consistency(member_id)
        if issues:
            inconsistent += 1
            logger.warning(f"  member {member_id}: {'; '.join(issues)}")

    logger.info(f"Checked {len(member_ids)} members, {inconsistent} inconsistent")
    return inconsistent


async def rebuild_member_paths(apply: bool) -> None:
    """Check, and optionally rebuild, materialized paths."""
    engine = create_engine()
    session_maker = create_session_maker(engine)

    logger.info("=" * 60)
    logger.info("REBUILD MEMBER PATHS")
    logger.info(f"Mode: {'APPLY CHANGES' if apply else 'CHECK ONLY'}")
    logger.info("=" * 60)

    try:
        async with session_maker() as session:
            service = AncestryService(session)
            inconsistent = await report_inconsistencies(service)

            if apply:
                changed = await service.rebuild_paths()
                logger.success(f"Rewrote {changed} paths")
            elif inconsistent:
                logger.info("Run with --apply to rewrite them")
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Re-derive materialized member paths from upline links"
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--check",
        action="store_true",
        help="Report inconsistent paths without changing anything"
    )
    group.add_argument(
        "--apply",
        action="store_true",
        help="Rewrite every path from the links"
    )

    args = parser.parse_args()
    setup_logging()
    asyncio.run(rebuild_member_paths(apply=args.apply))


if __name__ == "__main__":
    main()

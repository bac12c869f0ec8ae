#!/usr/bin/env python3
"""
Seed Institutions Script

Loads a raw institution JSON file (flat-label or nested shape) into the
universities and clep_exam_policies tables. Safe to re-run: rows are
matched by DI code and updated in place.

Usage:
    python -m scripts.seed_institutions data/schools.json
    python -m scripts.seed_institutions data/schools.json --create-tables
"""

import argparse
import asyncio
import json
import logging
from datetime import datetime

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clepfinder.domain.normalization import load_institutions
from clepfinder.infrastructure.db.database import (
    close_db,
    get_db_manager,
    get_session_context,
    init_db,
)
from clepfinder.infrastructure.db.repositories import UniversityRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_database(path: Path, create_tables: bool = False) -> dict:
    """
    Normalize the file and upsert every institution with a usable DI code.

    Records without a DI code (or repeating one already seen) cannot be
    keyed in the universities table and are skipped.

    Returns:
        Dict with seeding statistics
    """
    stats = {
        "started_at": datetime.utcnow().isoformat(),
        "source": str(path),
        "saved": 0,
        "skipped_missing_di_code": 0,
        "skipped_duplicates": 0,
    }

    with path.open(encoding="utf-8") as f:
        payload = json.load(f)

    institutions = load_institutions(payload)
    logger.info(f"Seeding {len(institutions)} institutions from {path}...")

    await init_db()
    if create_tables:
        await get_db_manager().create_tables()
        logger.info("Tables created from model metadata")

    seen = set()
    async with get_session_context() as session:
        repo = UniversityRepository(session)

        for institution in institutions:
            if institution.di_code <= 0:
                logger.warning(f"  ✗ Skipping '{institution.name}': no DI code")
                stats["skipped_missing_di_code"] += 1
                continue
            if institution.di_code in seen:
                logger.warning(f"  ✗ Skipping '{institution.name}': duplicate DI code {institution.di_code}")
                stats["skipped_duplicates"] += 1
                continue

            seen.add(institution.di_code)
            await repo.save_institution(institution)
            stats["saved"] += 1

        stats["total_in_table"] = await repo.count()

    stats["completed_at"] = datetime.utcnow().isoformat()
    logger.info(f"Seeding complete: {stats}")
    return stats


async def main():
    parser = argparse.ArgumentParser(description="Seed CLEP institution data")
    parser.add_argument("path", type=Path, help="Raw institution JSON file")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from model metadata before seeding (skip when using Alembic)",
    )
    args = parser.parse_args()

    print("\n=== CLEP Institution Seed Script ===")
    print(f"Source: {args.path}\n")

    try:
        stats = await seed_database(args.path, create_tables=args.create_tables)
    finally:
        await close_db()

    print("\n=== Seed Complete ===")
    print(f"Saved: {stats['saved']}")
    print(f"Skipped (no DI code): {stats['skipped_missing_di_code']}")
    print(f"Skipped (duplicate DI code): {stats['skipped_duplicates']}")
    print(f"Universities in table: {stats['total_in_table']}")


if __name__ == "__main__":
    asyncio.run(main())

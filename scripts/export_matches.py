#!/usr/bin/env python3
"""
Write all recorded matches to a CSV file (defaults to matches-<date>.csv).
"""

import asyncio
import os
import sys

from dotenv import load_dotenv
from sqlalchemy import select

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
load_dotenv()

from apps.admin.export import export_filename, matches_to_csv  # noqa: E402
from core.db import AsyncSessionLocal  # noqa: E402
from models.match import Match  # noqa: E402


async def main() -> None:
    path = sys.argv[1] if len(sys.argv) > 1 else export_filename()

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Match).order_by(Match.created_at, Match.id))
        matches = result.scalars().all()

    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(matches_to_csv(matches))

    print(f"✅ Exported {len(matches)} matches to {path}")


if __name__ == "__main__":
    asyncio.run(main())

#!/usr/bin/env python3
"""
Upload number,name pairs from a CSV file.
"""

import asyncio
import os
import sys

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
load_dotenv()

from apps.admin.upload import EmptyPayloadError, upload_pairs  # noqa: E402
from core.db import AsyncSessionLocal  # noqa: E402


async def main() -> int:
    if len(sys.argv) < 2:
        print("Usage:")
        print(f"  {sys.argv[0]} <pairs.csv>   - insert number,name lines, skipping duplicates")
        return 2

    with open(sys.argv[1], encoding="utf-8-sig") as fh:
        payload = fh.read()

    async with AsyncSessionLocal() as db:
        try:
            report = await upload_pairs(db, payload)
        except EmptyPayloadError as e:
            print(f"❌ {e}")
            return 1

    print(f"✅ Uploaded {report.created} pairs")
    if report.errors:
        print(f"⚠️  Skipped {report.skipped} lines:")
        for error in report.errors:
            print(f"   • line {error.line}: {error.reason}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

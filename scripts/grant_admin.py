#!/usr/bin/env python3
"""
Grant admin rights to an existing account by email.
"""

import asyncio
import os
import sys

from dotenv import load_dotenv
from sqlalchemy import select

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
load_dotenv()

from apps.identity.provider import normalize_email  # noqa: E402
from apps.identity.session import grant_admin  # noqa: E402
from core.db import AsyncSessionLocal  # noqa: E402
from models.user import User  # noqa: E402


async def main() -> int:
    if len(sys.argv) < 2:
        print("Usage:")
        print(f"  {sys.argv[0]} <email>")
        return 2

    email = normalize_email(sys.argv[1])
    async with AsyncSessionLocal() as db:
        user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if user is None:
            print(f"❌ No account with email '{email}'")
            return 1

        if await grant_admin(db, user.id):
            print(f"✅ {user.display_name} ({email}) is now an admin")
        else:
            print(f"ℹ️  {user.display_name} ({email}) is already an admin")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

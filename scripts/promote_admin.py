#!/usr/bin/env python3
"""
Grant or remove the platform admin role.

Admins can list and remove users and manage sharing on any document. There
is no API for changing roles, so the first admin is created here.

Usage:
    python scripts/promote_admin.py alice@example.com
    python scripts/promote_admin.py alice@example.com --demote
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.core.permissions import UserRole
from app.db.database import get_async_url
from app.db.models import UserModel

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def set_role(session: AsyncSession, email: str, role: UserRole) -> bool:
    """Set a user's role. Returns False if no such user."""
    result = await session.execute(
        select(UserModel).where(UserModel.email == email.strip().lower())
    )
    user = result.scalar_one_or_none()
    if user is None:
        return False

    user.role = role.value
    user.updated_at = datetime.now(timezone.utc)
    return True


async def main_async(email: str, demote: bool = False) -> int:
    """Main async function."""
    settings = get_settings()
    engine = create_async_engine(
        get_async_url(settings.database_url),
        echo=False,
    )
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    role = UserRole.USER if demote else UserRole.ADMIN

    async with async_session_maker() as session:
        if not await set_role(session, email, role):
            logger.error(f"No user with email {email}")
            return 1
        await session.commit()

    await engine.dispose()
    logger.info(f"{email} now has role '{role.value}'")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Grant or remove the platform admin role"
    )
    parser.add_argument("email", help="Email of the account to change")
    parser.add_argument(
        "--demote",
        action="store_true",
        help="Make the user a regular user again",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(main_async(args.email, demote=args.demote)))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Clear expired email verification and password reset tokens.

Should be run periodically (e.g., hourly cron job) so stale token hashes
do not linger on user rows.

Usage:
    python scripts/cleanup_tokens.py
    python scripts/cleanup_tokens.py --stats
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.db.database import get_async_url
from app.db.models import UserModel

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def get_token_stats(session: AsyncSession, now: datetime) -> dict:
    """Count outstanding and expired one-time tokens."""

    async def count(*conditions) -> int:
        return await session.scalar(
            select(func.count()).select_from(UserModel).where(*conditions)
        ) or 0

    return {
        "pending_verifications": await count(
            UserModel.email_verification_token_hash.is_not(None),
        ),
        "expired_verifications": await count(
            UserModel.email_verification_token_hash.is_not(None),
            UserModel.email_verification_expires_at <= now,
        ),
        "pending_resets": await count(
            UserModel.password_reset_token_hash.is_not(None),
        ),
        "expired_resets": await count(
            UserModel.password_reset_token_hash.is_not(None),
            UserModel.password_reset_expires_at <= now,
        ),
    }


async def cleanup_expired(session: AsyncSession, now: datetime) -> tuple[int, int]:
    """Null out expired tokens. Returns (verifications, resets) cleared."""
    verifications = await session.execute(
        update(UserModel)
        .where(UserModel.email_verification_token_hash.is_not(None))
        .where(UserModel.email_verification_expires_at <= now)
        .values(email_verification_token_hash=None, email_verification_expires_at=None)
    )
    resets = await session.execute(
        update(UserModel)
        .where(UserModel.password_reset_token_hash.is_not(None))
        .where(UserModel.password_reset_expires_at <= now)
        .values(password_reset_token_hash=None, password_reset_expires_at=None)
    )
    return verifications.rowcount, resets.rowcount


async def main_async(stats_only: bool = False) -> None:
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
    now = datetime.now(timezone.utc)

    async with async_session_maker() as session:
        stats = await get_token_stats(session, now)

        logger.info("One-time token statistics:")
        logger.info(f"  Pending verifications: {stats['pending_verifications']:,}")
        logger.info(f"  Expired verifications: {stats['expired_verifications']:,}")
        logger.info(f"  Pending password resets: {stats['pending_resets']:,}")
        logger.info(f"  Expired password resets: {stats['expired_resets']:,}")

        if stats_only:
            return

        if stats["expired_verifications"] == 0 and stats["expired_resets"] == 0:
            logger.info("No expired tokens to clean up.")
            return

        verifications, resets = await cleanup_expired(session, now)
        await session.commit()

        logger.info(f"Cleared {verifications:,} verification and {resets:,} reset token(s).")

    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Clear expired one-time tokens"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Only show statistics, don't clean up",
    )

    args = parser.parse_args()
    asyncio.run(main_async(stats_only=args.stats))


if __name__ == "__main__":
    main()

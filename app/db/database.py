"""
Database connection and session management.
Uses SQLAlchemy async with PostgreSQL (asyncpg).
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.core.exceptions import ConflictError, StorageError


# Convert sync URL to async URL if needed
def get_async_url(url: str) -> str:
    """Convert PostgreSQL URL to async format."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    return url


# Create async engine
engine = create_async_engine(
    get_async_url(settings.database_url),
    echo=settings.debug,
    future=True,
)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


async def get_db_session() -> AsyncSession:
    """Get an async database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database tables."""
    # Import models so they register on Base.metadata
    import app.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def flush_changes(session: AsyncSession) -> None:
    """
    Flush pending changes, translating store failures into domain errors.

    A stale ``revision`` or a duplicate key means another request won the
    race for the same row; anything else is a storage failure. Nothing is
    retried here.
    """
    try:
        await session.flush()
    except (StaleDataError, IntegrityError) as e:
        raise ConflictError(f"Concurrent modification: {e}") from e
    except SQLAlchemyError as e:
        raise StorageError(f"Database flush failed: {e}") from e

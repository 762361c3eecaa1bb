from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from core.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    """Pool options for the configured backend."""
    if url.startswith("sqlite"):
        # Single shared connection so an in-memory database survives between sessions
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.is_development,
    **_engine_options(settings.database_url),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_models() -> None:
    """Create all tables that do not exist yet."""
    import models  # noqa: F401  # registers mappers on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# BIGINT keys do not alias the rowid on SQLite, so fall back to INTEGER there
BigIntId = BigInteger().with_variant(Integer(), "sqlite")

"""
Kitchen Compliance Database Session Management

Async engine and session factory built from settings on first use.
Reads that fan out (shift completion) take the factory, not a session:
each concurrent query needs its own AsyncSession.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass


def build_session_factory(database_url: str, echo: bool = False) -> async_sessionmaker[AsyncSession]:
    kwargs = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=10, pool_pre_ping=True)
    engine = create_async_engine(database_url, **kwargs)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide factory for the configured database."""
    settings = get_settings()
    return build_session_factory(settings.database_url, echo=settings.database_echo)


async def create_tables(engine: AsyncEngine) -> None:
    """Build every table from model metadata (tests, local bootstrap)."""
    import db.models  # noqa: F401  registers tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

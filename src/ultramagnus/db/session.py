"""Async database engine and session management."""

import os
from pathlib import Path
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Database path from environment or default to data/ultramagnus.db relative to the repo root
_default_db_path = Path(__file__).parent.parent.parent.parent / "data" / "ultramagnus.db"
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{_default_db_path}")


def make_engine(url: str) -> AsyncEngine:
    """Engine for a URL; in-memory SQLite shares one connection so every session sees the same tables."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_async_engine(url, echo=False, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(url, echo=False, pool_pre_ping=True)


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows stay readable after the per-write commits the repositories issue
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = make_engine(DATABASE_URL)

async_session = make_sessionmaker(engine)


async def get_session() -> AsyncSession:
    """Get a new async database session."""
    async with async_session() as session:
        yield session

"""Async engine, session factory and the request-scoped session dependency."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config import get_settings

settings = get_settings()

Base = declarative_base()


def build_engine(database_url: str) -> AsyncEngine:
    """
    Engine for a database URL.

    SQLite (local runs) takes no server pool options. SQL echo stays off
    everywhere, it floods the logs.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)

    return create_async_engine(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=False,
        pool_pre_ping=True,  # Drop connections the server closed while idle
        pool_recycle=300,
    )


engine = build_engine(settings.database_url)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create missing tables. Changes to existing tables go through alembic/versions."""
    from app.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)


async def get_db():
    """FastAPI dependency: one session per request, rolled back if the handler fails."""
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

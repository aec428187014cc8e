from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings


# Base class for models
class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine on first use.

    The engine is only needed when audit records go to the database, so it
    is not built at import time.
    """
    settings = get_settings()
    options: dict = {"echo": settings.DEBUG}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10)
    return create_async_engine(settings.DATABASE_URL, **options)


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables() -> None:
    """Create audit tables if they do not exist yet."""
    # Models must be imported so they register on Base.metadata
    from toolgate.audit import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Dependency for FastAPI routes
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session

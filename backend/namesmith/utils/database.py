"""
Database connection and session management
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool

from namesmith.config import get_settings

# Lazy initialization for serverless environments
_engine = None
_async_session_maker = None
_sync_engine = None
_sync_session_maker = None


def _get_database_url() -> str:
    """Get and convert database URL for async"""
    database_url = get_settings().DATABASE_URL
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("sqlite://"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def _get_sync_database_url() -> str:
    """Get and convert database URL for sync workers"""
    database_url = get_settings().DATABASE_URL
    return (
        database_url
        .replace("postgresql+asyncpg://", "postgresql://", 1)
        .replace("sqlite+aiosqlite://", "sqlite://", 1)
    )


def _is_serverless() -> bool:
    """Check if running in serverless environment"""
    return bool(os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME"))


def _pool_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    if _is_serverless():
        return {"poolclass": NullPool}
    settings = get_settings()
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
    }


def _get_engine():
    """Lazy engine initialization"""
    global _engine
    if _engine is None:
        url = _get_database_url()
        _engine = create_async_engine(
            url,
            echo=get_settings().DEBUG,
            pool_pre_ping=True,
            **_pool_kwargs(url),
        )
    return _engine


def get_session_maker() -> async_sessionmaker:
    """Lazy session maker initialization"""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            _get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_maker


@asynccontextmanager
async def isolated_session_maker() -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session maker on a private unpooled engine.
    For async code driven from a short-lived event loop (Celery tasks).
    """
    engine = create_async_engine(_get_database_url(), poolclass=NullPool)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


async def init_db():
    """Initialize database tables"""
    # models import utils.clock, so Base is imported here rather than at module level
    from namesmith.models import Base

    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    global _engine, _async_session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None


# For Celery workers (sync context) - also lazy loaded

def _get_sync_engine():
    """Lazy sync engine initialization"""
    global _sync_engine
    if _sync_engine is None:
        url = _get_sync_database_url()
        _sync_engine = create_engine(url, pool_pre_ping=True, **_pool_kwargs(url))
    return _sync_engine


def get_sync_db() -> Session:
    """Get synchronous database session for Celery workers"""
    global _sync_session_maker
    if _sync_session_maker is None:
        _sync_session_maker = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=_get_sync_engine(),
        )
    return _sync_session_maker()

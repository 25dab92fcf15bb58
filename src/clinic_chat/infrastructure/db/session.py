from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from clinic_chat.application.exceptions import StoreError
from clinic_chat.config import settings

engine = create_async_engine(
    settings.database_url,
    poolclass=AsyncAdaptedQueuePool,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
    pool_recycle=settings.DB_POOL_RECYCLE,
    echo=False,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

SessionFactory = async_sessionmaker[AsyncSession]


@asynccontextmanager
async def store_session(sessions: SessionFactory) -> AsyncIterator[AsyncSession]:
    """One session per store call; driver and connection errors become StoreError."""
    try:
        async with sessions() as session:
            yield session
    except (SQLAlchemyError, OSError) as exc:
        raise StoreError(f"Store call failed: {exc.__class__.__name__}") from exc

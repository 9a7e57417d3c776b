"""
Async SQLAlchemy database session configuration.

Every write use case runs inside one AsyncSession; the session is the
transaction handle threaded through the deal engine.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from rea_deals.config import settings

logger = logging.getLogger(__name__)

# Overlap checks in the availability guard rely on this isolation level
engine = create_async_engine(
    settings.database_url,
    poolclass=NullPool,
    echo=not settings.is_production,  # SQL logging in dev
    isolation_level=settings.db_isolation_level,
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    The deal engine commits its own transactions; anything left open when
    the request ends is rolled back.
    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()

"""Database session management."""

from rea_deals.db.session import AsyncSessionLocal, engine, get_db

__all__ = [
    "AsyncSessionLocal",
    "engine",
    "get_db",
]

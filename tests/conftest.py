"""
Pytest configuration and fixtures.
"""

import os
import uuid
from decimal import Decimal
from typing import Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("IS_PRODUCTION", "true")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from rea_deals.models import Base, Expense, ListingType, Property, PropertyStatus


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


async def add_property(
    session: AsyncSession,
    listing_type: ListingType = ListingType.AGENCY_OWNED,
    brokerage_commission_percent: Optional[Decimal] = None,
    status: Optional[PropertyStatus] = PropertyStatus.ACTIVE,
) -> Property:
    """Seed a listings row the way the listings subsystem would."""
    prop = Property(
        id=uuid.uuid4(),
        listing_type=listing_type.value,
        brokerage_commission_percent=brokerage_commission_percent,
        status=status.value if status else None,
    )
    session.add(prop)
    await session.commit()
    return prop


async def add_expense(session: AsyncSession, property_id: uuid.UUID, amount: Decimal) -> Expense:
    expense = Expense(property_id=property_id, amount=amount)
    session.add(expense)
    await session.commit()
    return expense


@pytest.fixture
def make_property(db_session):
    async def _make(**kwargs) -> Property:
        return await add_property(db_session, **kwargs)
    return _make


@pytest.fixture
def make_expense(db_session):
    async def _make(property_id: uuid.UUID, amount) -> Expense:
        return await add_expense(db_session, property_id, Decimal(str(amount)))
    return _make

"""Root conftest — shared test configuration and database fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database (aiosqlite)
    - Pub/sub and settings never leak between tests
"""

import os

# Ensure tests never reach a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, create_async_engine, async_sessionmaker,
)

from resource_links.db.base import Base  # noqa: E402
from resource_links.infrastructure.model_registry import get_model_registry  # noqa: E402
from resource_links.models import Animal, Caretaker, Farm  # noqa: E402


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def registry():
    return get_model_registry()


@pytest.fixture
async def seed_farm(test_db):
    """Farm#1 with no animals and no caretakers."""
    farm = Farm(id=1, name="Old MacDonald's", location="Countryside")
    test_db.add(farm)
    await test_db.commit()
    return farm


@pytest.fixture
async def seed_animal(test_db):
    animal = Animal(name="Bessie", species="cow")
    test_db.add(animal)
    await test_db.commit()
    return animal


@pytest.fixture
async def seed_caretaker(test_db):
    caretaker = Caretaker(name="Ada", role="vet")
    test_db.add(caretaker)
    await test_db.commit()
    return caretaker

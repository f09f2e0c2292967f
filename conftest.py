"""
Pytest configuration and fixtures.

This module provides the core testing infrastructure including:
- An in-memory SQLite engine with the test tables created
- Session fixtures for database access, empty or seeded
- The product policy and an in-memory backend over the same rows
"""

from collections.abc import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from queryhelper.schemas.query import QuerySettings
from queryhelper.testing import MemoryQuery
from tests.factories import PRODUCT_ROWS, PRODUCT_SETTINGS, create_products


@pytest.fixture(scope="function")
def engine():
    """Create a fresh in-memory database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture(scope="function")
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as test_session:
        yield test_session


@pytest.fixture
def seeded_session(session: Session) -> Session:
    """Session whose database already holds the product catalogue."""
    create_products(session)
    return session


@pytest.fixture
def product_settings() -> QuerySettings:
    return PRODUCT_SETTINGS


@pytest.fixture
def memory_products() -> MemoryQuery:
    return MemoryQuery(PRODUCT_ROWS)

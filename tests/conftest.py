"""
Shared pytest fixtures and configuration for entity-repo tests.

This module provides:
- Environment isolation for ``ENTITYREPO_*`` settings
- An in-memory SQLite engine (aiosqlite, StaticPool) with the test schema
- AsyncSession / EntitySession / EntityRepository fixtures
- Seed data

Usage:
    Fixtures are auto-discovered by pytest::

        @pytest.mark.asyncio
        async def test_something(repo, widgets):
            ...
"""

import os
import sys
from pathlib import Path
from typing import Any, AsyncIterator

import pytest
import pytest_asyncio

# Ensure entityrepo package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from entityrepo.orm.base import EntityBase
from entityrepo.orm.session import (
    EntitySession,
    create_entity_engine,
    create_schema,
    entity_session_factory,
)
from entityrepo.repository import EntityRepository
from entityrepo.settings import RepositorySettings

from _support.entities import Part, Widget


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests that touch the database as integration, the rest as unit."""
    for item in items:
        fixtures = set(getattr(item, "fixturenames", ()))
        if fixtures & {"engine", "session", "storage", "repo"}:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop ENTITYREPO_* variables so settings start from defaults."""
    for key in list(os.environ):
        if key.startswith("ENTITYREPO_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> RepositorySettings:
    """Default settings, ignoring any .env file."""
    return RepositorySettings(_env_file=None)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with all test tables created."""
    eng = create_entity_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(eng, EntityBase.metadata)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """AsyncSession from the entity session factory."""
    factory = entity_session_factory(engine)
    async with factory() as sess:
        yield sess


@pytest.fixture
def storage(session: AsyncSession) -> EntitySession:
    """EntitySession (unit of work) over the test session."""
    return EntitySession(session)


@pytest.fixture
def repo(storage: EntitySession, settings: RepositorySettings) -> EntityRepository:
    """Repository with default policy and no logger."""
    return EntityRepository(storage, settings=settings)


@pytest_asyncio.fixture
async def widgets(engine: AsyncEngine) -> list[dict[str, Any]]:
    """Three widgets (the first with two parts) committed through a separate session."""
    factory = entity_session_factory(engine)
    async with factory() as sess:
        rows = [
            Widget(name="bolt", price=5, parts=[Part(label="head"), Part(label="thread")]),
            Widget(name="nut", price=3),
            Widget(name="washer", price=12),
        ]
        sess.add_all(rows)
        await sess.commit()
        return [{"id": w.id, "name": w.name, "price": w.price} for w in rows]

"""Shared test fixtures for the home ledger test suite.

Provides:
    - A throw-away SQLite database per test (file-backed, savepoints enabled)
    - Actor factories for homeowners and contractors
    - A recording notification emitter
    - Async test support via pytest-asyncio

SQLite allows one writer at a time, so tests that use two sessions commit or
close one before writing through the other.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from homeledger.domain.access import Actor
from homeledger.domain.address import AddressParts
from homeledger.domain.enums import UserRole
from homeledger.infrastructure.database.engine import (
    build_engine,
    build_session_factory,
    create_tables,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from homeledger.domain.notifications import NotificationEvent


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite database with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'homeledger.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


def make_actor(
    role: UserRole,
    email: str | None = None,
    display_name: str | None = None,
) -> Actor:
    user_id = uuid.uuid4()
    return Actor(
        user_id=user_id,
        role=role,
        email=email or f"{user_id.hex[:8]}@example.com",
        display_name=display_name,
    )


@pytest.fixture
def actor_factory():  # noqa: ANN201
    return make_actor


@pytest.fixture
def homeowner() -> Actor:
    return make_actor(UserRole.HOMEOWNER, "olivia@example.com", "Olivia Owner")


@pytest.fixture
def other_homeowner() -> Actor:
    return make_actor(UserRole.HOMEOWNER, "oscar@example.com", "Oscar Other")


@pytest.fixture
def contractor() -> Actor:
    return make_actor(UserRole.PRO, "pat@acmeplumbing.example", "Acme Plumbing")


@pytest.fixture
def other_contractor() -> Actor:
    return make_actor(UserRole.PRO, "ray@roofers.example", "Ray's Roofing")


@pytest.fixture
def main_street() -> AddressParts:
    return AddressParts(line1="123 Main St.", city="Springfield", state="IL", zip="62701")


class RecordingEmitter:
    """NotificationEmitter that keeps events in memory."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()

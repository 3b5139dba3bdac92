"""
Shared fixtures.

Strategy:
- Every test gets its own in-memory SQLite database (aiosqlite, StaticPool so
  all sessions share the single connection), created with the ORM metadata.
- The HTTP client runs the FastAPI app over ASGITransport with ``get_db``,
  ``get_ledger_config`` and ``get_today`` overridden, so reports are
  deterministic regardless of the system clock or a local ``.env``.
- ``make_event`` builds engine-level PunchEvent snapshots for the pure tests.
"""

from __future__ import annotations

import itertools
from datetime import date, time

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from timeledger.core.dependencies import get_ledger_config, get_today
from timeledger.db.models import Base
from timeledger.db.session import get_db
from timeledger.main import app
from timeledger.schemas.ledger import LedgerConfig, Position, PunchEvent

TODAY = date(2025, 6, 18)


# ---------------------------------------------------------------------------
# Engine-level helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> LedgerConfig:
    """Defaults: 8h day, lunch 30-90 min, lunch window 12:30-14:00, auto lunch on."""
    return LedgerConfig()


@pytest.fixture
def make_event():
    """Factory for PunchEvent snapshots with auto-incremented ids."""
    ids = itertools.count(1)

    def _make(
        kind: str,
        hhmm: str,
        day: date = TODAY,
        position: Position | None = None,
        lunch: int | None = None,
        work_gap: bool | None = None,
        event_id: int | None = None,
    ) -> PunchEvent:
        hours, minutes = (int(part) for part in hhmm.split(":"))
        return PunchEvent(
            id=event_id if event_id is not None else next(ids),
            day=day,
            time_of_day=time(hours, minutes),
            kind=kind,
            position=position,
            lunch_minutes=lunch,
            work_gap=work_gap,
        )

    return _make


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    """Raw session for direct event store calls."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(session_factory, config: LedgerConfig) -> AsyncClient:
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_ledger_config] = lambda: config
    app.dependency_overrides[get_today] = lambda: TODAY

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def punch(client: AsyncClient, day: str, hhmm: str, kind: str, **extra) -> dict:
    """POST one event and return the stored event payload."""
    resp = await client.post(
        "/api/events",
        json={"day": day, "time_of_day": hhmm, "kind": kind, **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["event"]


@pytest.fixture
def post_event():
    return punch

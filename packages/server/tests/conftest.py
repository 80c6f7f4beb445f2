"""Shared test configuration: in-memory SQLite store, sessions, users, client."""

from __future__ import annotations

import os

# Settings are read at import time, so configure them before importing app.
os.environ.setdefault("ORGTASKS_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ORGTASKS_SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")
os.environ.setdefault("ORGTASKS_BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.database import get_session  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.services import users as user_service  # noqa: E402

PASSWORD = "correct-horse-battery"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session):
    """Register users directly through the identity service."""
    counter = {"n": 0}

    async def _make(full_name: str | None = None, email: str | None = None):
        counter["n"] += 1
        n = counter["n"]
        user = await user_service.register(
            full_name or f"User {n}",
            email or f"user{n}@example.com",
            PASSWORD,
            session,
        )
        await session.commit()
        return user

    return _make


@pytest.fixture
async def alice(make_user):
    return await make_user("Alice Owner", "alice@example.com")


@pytest.fixture
async def bob(make_user):
    return await make_user("Bob Member", "bob@example.com")


@pytest.fixture
async def carol(make_user):
    return await make_user("Carol Outsider", "carol@example.com")


@pytest.fixture
def due():
    """Due dates relative to a fixed base so ordering is deterministic."""
    base = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)

    def _due(days: int = 0) -> datetime:
        return base + timedelta(days=days)

    return _due


@pytest.fixture
async def client(session_factory):
    async def _override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = _override_get_session
    try:
        async with AsyncClient(
            transport=ASGITransport(app=fastapi_app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register through the API; returns (user_id, auth headers)."""

    async def _signup(full_name: str, email: str) -> tuple[str, dict]:
        response = await client.post(
            "/auth/register",
            json={"full_name": full_name, "email": email, "password": PASSWORD},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}

    return _signup

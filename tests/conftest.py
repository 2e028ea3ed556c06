"""
Test fixtures for the Squadron Roster API test suite.

  - db_engine / db_session: Fresh SQLite database file for each test
  - mailer: Recording mail transport (captures reset emails instead of sending)
  - client: Async HTTP test client with the test database and mailer injected
  - owner_token: Bearer token of the first registered account (the owner)
  - member_token: Bearer token of a second account, approved by the owner

Key design decisions:
  - Each test gets its own database file under tmp_path. A file (rather than
    sqlite+aiosqlite://) gives every session its own connection, so the
    concurrency tests exercise real SQLite locking.
  - We override get_db and get_mailer, so the application code runs exactly as
    in production apart from the injected collaborators.
  - Identities are carried per request via auth_header(token) instead of
    mutating shared client headers.
"""

import os
import re

# Required settings must exist before roster.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
# The throttling tests build their own app with a small budget
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from roster.database import get_db, init_models
from roster.dependencies import get_mailer
from roster.main import app


PASSWORD = "Password123"
OWNER_EMAIL = "owner@example.com"
OWNER_LOGIN = "owner@sq23rd.com"
MEMBER_EMAIL = "member@example.com"
MEMBER_LOGIN = "member@sq23rd.com"


class RecordingMailer:
    """Mailer that stores messages instead of delivering them."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.sent.append({"to": to, "subject": subject, "body": body})

    def last_reset_token(self) -> str:
        match = re.search(r"token=([0-9a-f]+)", self.sent[-1]["body"])
        assert match, "no reset link in the last email"
        return match.group(1)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register(client, email: str, password: str = PASSWORD, **extra):
    return await client.post(
        "/register",
        json={"email": email, "password": password, "name": "Test User", **extra},
    )


async def login(client, login_email: str, password: str = PASSWORD):
    return await client.post(
        "/login",
        json={"email": login_email, "password": password},
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roster.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingMailer()


def override_collaborators(app, db_engine, mailer) -> None:
    """Point app's get_db at db_engine and its get_mailer at mailer."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer


@pytest_asyncio.fixture
async def client(db_engine, mailer):
    """Async HTTP test client with the test database and mailer injected."""
    override_collaborators(app, db_engine, mailer)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def owner_token(client):
    """Register the first account (which becomes owner) and log it in."""
    response = await register(client, OWNER_EMAIL)
    assert response.status_code == 201, f"Owner registration failed: {response.text}"
    response = await login(client, OWNER_LOGIN)
    assert response.status_code == 200, f"Owner login failed: {response.text}"
    return response.json()["token"]


@pytest_asyncio.fixture
async def member_token(client, owner_token):
    """Register a second account, approve it as the owner, and log it in."""
    response = await register(client, MEMBER_EMAIL)
    assert response.status_code == 201
    response = await client.put(
        f"/users/{MEMBER_EMAIL}/approve", headers=auth_header(owner_token)
    )
    assert response.status_code == 200, f"Approval failed: {response.text}"
    response = await login(client, MEMBER_LOGIN)
    assert response.status_code == 200
    return response.json()["token"]

"""
Test fixtures for the Tours API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory: Fresh in-memory SQLite database per test
  - make_client: Factory for async HTTP clients sharing that database.
    Every user gets their own client, so auth headers and the refresh
    cookie jar never leak between users.
  - client: An unauthenticated client
  - user_client / second_user_client: Clients logged in as role "user"
  - admin_client / lead_guide_client: Staff clients
  - sent_emails: Records every email the API tries to send
  - tour: A tour created through the API

Key design decisions:
  - Secrets are set in the environment before tours_api is imported,
    since Settings is instantiated at import time.
  - get_db is overridden with a session bound to the test engine but
    with the same commit/rollback rules as the real one.
  - Staff users sign up normally and are then promoted directly in the
    database, the way an operator would (see demo/promote_admin.py).
"""

import os

os.environ.setdefault("SECRET_KEY", "test-access-secret")
os.environ.setdefault("REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "development")

import re

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from tours_api.database import Base, get_db
from tours_api.dependencies import get_email_sender
from tours_api.exceptions import ToursAPIError
from tours_api.main import app
from tours_api.models.user import User, UserRole
from tours_api.notifications import EmailDeliveryError, EmailSender


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

API = "/api/v1"

RESET_LINK = re.compile(r"/api/v1/users/resetPassword/([0-9a-f]{64})")


class RecordingEmailSender(EmailSender):
    """Keeps sent emails in memory instead of calling the email API."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send(self, to_email: str, subject: str, message: str) -> None:
        self.sent.append({"to": to_email, "subject": subject, "message": message})

    def last_reset_token(self) -> str:
        match = RESET_LINK.search(self.sent[-1]["message"])
        assert match, f"No reset link in: {self.sent[-1]['message']}"
        return match.group(1)


class FailingEmailSender(EmailSender):
    async def send(self, to_email: str, subject: str, message: str) -> None:
        raise EmailDeliveryError("provider unavailable")


def signup_payload(name: str, email: str, password: str = "SecurePass123!", **extra) -> dict:
    return {
        "name": name,
        "email": email,
        "password": password,
        "password_confirm": password,
        **extra,
    }


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sent_emails():
    return RecordingEmailSender()


@pytest_asyncio.fixture
async def make_client(session_factory, sent_emails):
    """
    Factory for HTTP clients talking to the app with the test database.

    Overrides get_db so every request hits the in-memory database, and
    get_email_sender so no real email is sent.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except ToursAPIError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: sent_emails

    clients: list[AsyncClient] = []

    def _make() -> AsyncClient:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    """Unauthenticated client."""
    return make_client()


async def signed_up_client(make_client, payload: dict) -> AsyncClient:
    ac = make_client()
    response = await ac.post(f"{API}/users/signup", json=payload)
    assert response.status_code == 201, f"Signup failed: {response.text}"
    ac.headers["Authorization"] = f"Bearer {response.json()['token']}"
    ac.user = response.json()["data"]["user"]
    return ac


async def _staff_client(make_client, session_factory, payload: dict, role: UserRole) -> AsyncClient:
    ac = await signed_up_client(make_client, payload)
    async with session_factory() as session:
        await session.execute(
            update(User).where(User.email == payload["email"]).values(role=role)
        )
        await session.commit()

    # Log in again so the token claims carry the new role
    response = await ac.post(
        f"{API}/users/login",
        json={"email": payload["email"], "password": payload["password"]},
    )
    assert response.status_code == 200
    ac.headers["Authorization"] = f"Bearer {response.json()['token']}"
    ac.user = response.json()["data"]["user"]
    return ac


@pytest_asyncio.fixture
async def user_client(make_client):
    """Client logged in as a regular user."""
    return await signed_up_client(
        make_client, signup_payload("Test User", "testuser@example.com")
    )


@pytest_asyncio.fixture
async def second_user_client(make_client):
    """A second regular user for cross-user authorization tests."""
    return await signed_up_client(
        make_client, signup_payload("Second User", "seconduser@example.com", "SecurePass456!")
    )


@pytest_asyncio.fixture
async def admin_client(make_client, session_factory):
    return await _staff_client(
        make_client, session_factory,
        signup_payload("Admin User", "admin@example.com", "AdminPass123!"),
        UserRole.ADMIN,
    )


@pytest_asyncio.fixture
async def lead_guide_client(make_client, session_factory):
    return await _staff_client(
        make_client, session_factory,
        signup_payload("Lead Guide", "leadguide@example.com", "GuidePass123!"),
        UserRole.LEAD_GUIDE,
    )


def tour_payload(name: str = "The Forest Hiker", **overrides) -> dict:
    payload = {
        "name": name,
        "duration": 5,
        "max_group_size": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "image_cover": "tour-1-cover.jpg",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def tour(admin_client):
    """A public tour, created through the API."""
    response = await admin_client.post(f"{API}/tours", json=tour_payload())
    assert response.status_code == 201, response.text
    return response.json()["data"]

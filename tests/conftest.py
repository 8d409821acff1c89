"""
Test fixtures for the Donation Exchange test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory: Fresh SQLite file database for each test
  - client: Async HTTP test client wired to the test database
  - notifier / scorer: In-memory fakes injected through dependency_overrides
  - donor / seeker / other_seeker / moderator: provisioned users, each with
    its own bearer token headers
  - approved_listing: A donation listing owned by `donor`, already approved

Key design decisions:
  - A file database (not in-memory) so every request gets its own
    connection. The race tests depend on real transaction isolation and
    SQLite's BEGIN IMMEDIATE write lock, which a single shared in-memory
    connection can't provide.
  - Identity is external, so users are inserted directly through the user
    service and tokens are minted with create_access_token, exactly like
    the identity provider would.
  - Tokens travel as per-request headers rather than client defaults, so
    several users can act through one client concurrently.
"""

import asyncio
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import uuid
from dataclasses import dataclass, field

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import donation_exchange.models  # noqa: F401
from donation_exchange.database import Base, build_engine, get_db
from donation_exchange.dependencies import get_notifier, get_scorer
from donation_exchange.main import app
from donation_exchange.models.user import UserType
from donation_exchange.security import create_access_token
from donation_exchange.services import user_service


# ---------------------------------------------------------------------------
# Fakes for the outbound integrations
# ---------------------------------------------------------------------------

class RecordingNotifier:
    """Keeps every acceptance notice in memory; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def notify_accepted(self, transaction, seeker_contact, donor_contact, listing_title):
        if self.fail:
            raise RuntimeError("notification relay is down")
        self.sent.append(
            {
                "transaction_id": transaction.id,
                "seeker": seeker_contact,
                "donor": donor_contact,
                "listing_title": listing_title,
            }
        )


class StaticScorer:
    """Returns preset scores by message text; unknown messages are left out.

    Set `delay` to simulate a slow classifier.
    """

    def __init__(self, scores: dict[str, float] | None = None):
        self.scores = scores or {}
        self.fail = False
        self.delay = 0.0
        self.calls = 0

    async def score(self, batch):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("classifier unavailable")
        return {
            item.id: self.scores[item.message]
            for item in batch
            if item.message in self.scores
        }


@dataclass
class Actor:
    """A provisioned user and the headers that authenticate as them."""
    id: uuid.UUID
    email: str
    headers: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh file-backed engine with all tables for each test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    """
    Factory for short-lived sessions used to set up and inspect state.

    Always use it as `async with session_factory() as session:` and keep
    the block short: an open SQLite transaction holds the write lock.
    """
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def scorer():
    return StaticScorer()


@pytest_asyncio.fixture
async def client(session_factory, notifier, scorer):
    """
    Async HTTP test client with the test database and fakes injected.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_scorer] = lambda: scorer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def auth_headers(user_id: uuid.UUID) -> dict:
    token = create_access_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(session_factory):
    """Provision a user directly, as the identity provider sync would."""

    async def _make_user(
        email: str,
        first_name: str = "Test",
        last_name: str = "User",
        phone: str | None = None,
        user_type: UserType = UserType.MEMBER,
    ) -> Actor:
        async with session_factory() as session:
            user = await user_service.provision_user(
                session,
                email=email,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                user_type=user_type,
            )
        return Actor(id=user.id, email=email, headers=auth_headers(user.id))

    return _make_user


@pytest_asyncio.fixture
async def donor(make_user):
    return await make_user("donor@example.com", "Dana", "Donor", phone="555-0100")


@pytest_asyncio.fixture
async def seeker(make_user):
    return await make_user("seeker@example.com", "Sam", "Seeker", phone="555-0200")


@pytest_asyncio.fixture
async def other_seeker(make_user):
    return await make_user("other@example.com", "Olive", "Other")


@pytest_asyncio.fixture
async def moderator(make_user):
    return await make_user(
        "moderator@example.com", "Mo", "Derator", user_type=UserType.ADMIN
    )


# ---------------------------------------------------------------------------
# Listings and requests
# ---------------------------------------------------------------------------

DONATION_BODY = {
    "kind": "DONATION",
    "title": "Winter jacket",
    "description": "Warm jacket, size M",
    "category": "clothing",
    "condition": "good",
    "contact": "555-0199",
}


async def create_listing(client, owner: Actor, **overrides) -> dict:
    resp = await client.post(
        "/listings", json={**DONATION_BODY, **overrides}, headers=owner.headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def approve(client, moderator: Actor, listing_id: str, approved: bool = True):
    return await client.put(
        f"/admin/listings/{listing_id}/approval",
        json={"approved": approved},
        headers=moderator.headers,
    )


async def request_listing(client, seeker: Actor, listing_id: str, message: str = "I need it") -> dict:
    resp = await client.post(
        f"/listings/{listing_id}/requests",
        json={"message": message},
        headers=seeker.headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def accept(client, owner: Actor, listing_id: str, request_id: str):
    return await client.post(
        f"/listings/{listing_id}/requests/{request_id}/accept",
        headers=owner.headers,
    )


@pytest_asyncio.fixture
async def approved_listing(client, donor, moderator):
    listing = await create_listing(client, donor)
    resp = await approve(client, moderator, listing["id"])
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def open_transaction(client, donor, seeker, approved_listing):
    """A transaction awaiting receipt: seeker's request accepted by donor."""
    req = await request_listing(client, seeker, approved_listing["id"])
    resp = await accept(client, donor, approved_listing["id"], req["id"])
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def received_transaction(client, seeker, open_transaction):
    resp = await client.post(
        f"/transactions/{open_transaction['id']}/receive", headers=seeker.headers
    )
    assert resp.status_code == 200, resp.text
    return resp.json()

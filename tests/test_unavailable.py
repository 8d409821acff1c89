"""
Tests for store failures — the database refusing or timing out a write.

Covers:
  - A store error part-way through an accept rolls every write back and
    answers 503 "unavailable"
  - A request that can't get the SQLite write lock in time answers 503
    instead of hanging or leaking a 500
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from conftest import accept, request_listing

from donation_exchange.config import settings
from donation_exchange.database import build_engine, get_db
from donation_exchange.main import app
from donation_exchange.models.transaction import Transaction


@pytest.fixture
def failing_transaction_insert(monkeypatch):
    """Make the flush that inserts a Transaction fail like a locked database."""
    original_flush = AsyncSession.flush

    async def flush(self, objects=None):
        if any(isinstance(obj, Transaction) for obj in self.new):
            raise OperationalError(
                "INSERT INTO transactions", {}, Exception("database is locked")
            )
        return await original_flush(self, objects)

    monkeypatch.setattr(AsyncSession, "flush", flush)


class TestStoreFailureDuringAccept:

    async def test_accept_rolled_back(
        self,
        client,
        donor,
        seeker,
        other_seeker,
        approved_listing,
        notifier,
        session_factory,
        failing_transaction_insert,
    ):
        first = await request_listing(client, seeker, approved_listing["id"])
        second = await request_listing(client, other_seeker, approved_listing["id"])

        resp = await accept(client, donor, approved_listing["id"], first["id"])
        assert resp.status_code == 503
        assert resp.json()["error_type"] == "unavailable"

        listing = await client.get(f"/listings/{approved_listing['id']}", headers=donor.headers)
        assert listing.json()["status"] == "APPROVED"

        pending = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert {r["id"] for r in pending.json()} == {first["id"], second["id"]}
        assert all(r["status"] == "PENDING" for r in pending.json())

        async with session_factory() as session:
            assert await session.scalar(select(func.count(Transaction.id))) == 0
        assert notifier.sent == []

    async def test_accept_succeeds_once_store_recovers(
        self, client, donor, seeker, approved_listing, monkeypatch, failing_transaction_insert
    ):
        req = await request_listing(client, seeker, approved_listing["id"])
        resp = await accept(client, donor, approved_listing["id"], req["id"])
        assert resp.status_code == 503

        monkeypatch.undo()

        resp = await accept(client, donor, approved_listing["id"], req["id"])
        assert resp.status_code == 201


class TestLockTimeout:

    async def test_busy_database_answers_503(
        self, client, donor, approved_listing, db_engine, session_factory, monkeypatch
    ):
        monkeypatch.setattr(settings, "SQLITE_BUSY_TIMEOUT_SECONDS", 0.1)
        impatient_engine = build_engine(str(db_engine.url))
        impatient_sessions = async_sessionmaker(
            impatient_engine, class_=AsyncSession, expire_on_commit=False
        )

        async def impatient_get_db():
            async with impatient_sessions() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        previous = app.dependency_overrides[get_db]
        app.dependency_overrides[get_db] = impatient_get_db
        try:
            # Any open SQLite transaction holds the write lock (BEGIN IMMEDIATE)
            async with session_factory() as holder:
                await holder.execute(select(1))

                resp = await client.get("/listings/mine", headers=donor.headers)
                assert resp.status_code == 503
                assert resp.json()["error_type"] == "unavailable"

            resp = await client.get("/listings/mine", headers=donor.headers)
            assert resp.status_code == 200
            assert [l["id"] for l in resp.json()] == [approved_listing["id"]]
        finally:
            app.dependency_overrides[get_db] = previous
            await impatient_engine.dispose()

"""
Tests for the request ledger — creating, cancelling and reviewing requests.

Covers:
  - Only approved donation listings accept requests
  - One PENDING request per seeker per listing
  - Cancellation by the seeker
  - Owner-only review with advisory neediness scores
"""

import asyncio
import time
import uuid

from conftest import accept, approve, create_listing, request_listing

from donation_exchange.models.request import DonationRequest


class TestCreateRequest:

    async def test_request_approved_listing(self, client, seeker, approved_listing):
        req = await request_listing(client, seeker, approved_listing["id"], "Need it for winter")

        assert req["status"] == "PENDING"
        assert req["seeker_id"] == str(seeker.id)
        assert req["listing_id"] == approved_listing["id"]
        assert req["message"] == "Need it for winter"

    async def test_pending_listing_not_requestable(self, client, donor, seeker):
        listing = await create_listing(client, donor)
        resp = await client.post(
            f"/listings/{listing['id']}/requests",
            json={"message": "please"},
            headers=seeker.headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "not_requestable"

    async def test_rejected_listing_not_requestable(self, client, donor, seeker, moderator):
        listing = await create_listing(client, donor)
        await approve(client, moderator, listing["id"], approved=False)

        resp = await client.post(
            f"/listings/{listing['id']}/requests",
            json={"message": "please"},
            headers=seeker.headers,
        )
        assert resp.json()["error_type"] == "not_requestable"

    async def test_requirement_listing_not_requestable(self, client, donor, seeker, moderator):
        listing = await create_listing(
            client, donor, kind="REQUIREMENT", condition=None, urgency="LOW"
        )
        await approve(client, moderator, listing["id"])

        resp = await client.post(
            f"/listings/{listing['id']}/requests",
            json={"message": "please"},
            headers=seeker.headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "not_requestable"

    async def test_donated_listing_not_requestable(
        self, client, other_seeker, approved_listing, open_transaction
    ):
        resp = await client.post(
            f"/listings/{approved_listing['id']}/requests",
            json={"message": "too late?"},
            headers=other_seeker.headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "not_requestable"

    async def test_missing_listing(self, client, seeker):
        resp = await client.post(
            f"/listings/{uuid.uuid4()}/requests",
            json={"message": "please"},
            headers=seeker.headers,
        )
        assert resp.status_code == 404

    async def test_cannot_request_own_listing(self, client, donor, approved_listing):
        resp = await client.post(
            f"/listings/{approved_listing['id']}/requests",
            json={"message": "mine"},
            headers=donor.headers,
        )
        assert resp.status_code == 403

    async def test_duplicate_pending_rejected(self, client, seeker, approved_listing):
        await request_listing(client, seeker, approved_listing["id"])
        resp = await client.post(
            f"/listings/{approved_listing['id']}/requests",
            json={"message": "asking again"},
            headers=seeker.headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "duplicate_pending"

    async def test_concurrent_duplicates_create_one(self, client, seeker, approved_listing):
        responses = await asyncio.gather(
            *[
                client.post(
                    f"/listings/{approved_listing['id']}/requests",
                    json={"message": f"attempt {i}"},
                    headers=seeker.headers,
                )
                for i in range(3)
            ]
        )
        codes = sorted(r.status_code for r in responses)
        assert codes == [201, 409, 409]

        mine = await client.get("/requests/mine", headers=seeker.headers)
        assert len(mine.json()) == 1

    async def test_can_request_again_after_cancelling(self, client, seeker, approved_listing):
        first = await request_listing(client, seeker, approved_listing["id"])
        await client.post(f"/requests/{first['id']}/cancel", headers=seeker.headers)

        second = await request_listing(client, seeker, approved_listing["id"], "second try")
        assert second["id"] != first["id"]

    async def test_empty_message_rejected(self, client, seeker, approved_listing):
        resp = await client.post(
            f"/listings/{approved_listing['id']}/requests",
            json={"message": ""},
            headers=seeker.headers,
        )
        assert resp.status_code == 422


class TestCancelRequest:

    async def test_seeker_cancels_pending(self, client, seeker, approved_listing):
        req = await request_listing(client, seeker, approved_listing["id"])
        resp = await client.post(f"/requests/{req['id']}/cancel", headers=seeker.headers)

        assert resp.status_code == 200
        assert resp.json()["status"] == "REJECTED"

    async def test_other_user_cannot_cancel(self, client, seeker, other_seeker, approved_listing):
        req = await request_listing(client, seeker, approved_listing["id"])
        resp = await client.post(
            f"/requests/{req['id']}/cancel", headers=other_seeker.headers
        )
        assert resp.status_code == 403

    async def test_cannot_cancel_twice(self, client, seeker, approved_listing):
        req = await request_listing(client, seeker, approved_listing["id"])
        await client.post(f"/requests/{req['id']}/cancel", headers=seeker.headers)

        resp = await client.post(f"/requests/{req['id']}/cancel", headers=seeker.headers)
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "invalid_transition"

    async def test_cannot_cancel_accepted(self, client, donor, seeker, approved_listing):
        req = await request_listing(client, seeker, approved_listing["id"])
        await accept(client, donor, approved_listing["id"], req["id"])

        resp = await client.post(f"/requests/{req['id']}/cancel", headers=seeker.headers)
        assert resp.status_code == 409


class TestReviewPending:

    async def test_owner_sees_pending_oldest_first(
        self, client, donor, seeker, other_seeker, approved_listing
    ):
        first = await request_listing(client, seeker, approved_listing["id"], "first")
        second = await request_listing(client, other_seeker, approved_listing["id"], "second")

        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == [first["id"], second["id"]]

    async def test_cancelled_requests_not_listed(self, client, donor, seeker, approved_listing):
        req = await request_listing(client, seeker, approved_listing["id"])
        await client.post(f"/requests/{req['id']}/cancel", headers=seeker.headers)

        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert resp.json() == []

    async def test_non_owner_cannot_review(self, client, seeker, approved_listing):
        await request_listing(client, seeker, approved_listing["id"])
        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=seeker.headers
        )
        assert resp.status_code == 403

    async def test_scores_attached(
        self, client, donor, seeker, other_seeker, approved_listing, scorer
    ):
        scorer.scores = {"cold": 8.5, "nice to have": 2.0}
        await request_listing(client, seeker, approved_listing["id"], "nice to have")
        await request_listing(client, other_seeker, approved_listing["id"], "cold")

        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        scores = {r["message"]: r["neediness_score"] for r in resp.json()}
        assert scores == {"nice to have": 2.0, "cold": 8.5}

    async def test_rank_by_neediness_only_reorders_response(
        self, client, donor, seeker, other_seeker, approved_listing, scorer
    ):
        scorer.scores = {"cold": 8.5, "nice to have": 2.0}
        first = await request_listing(client, seeker, approved_listing["id"], "nice to have")
        second = await request_listing(client, other_seeker, approved_listing["id"], "cold")

        ranked = await client.get(
            f"/listings/{approved_listing['id']}/requests",
            params={"rank": "neediness"},
            headers=donor.headers,
        )
        assert [r["id"] for r in ranked.json()] == [second["id"], first["id"]]

        default = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert [r["id"] for r in default.json()] == [first["id"], second["id"]]

    async def test_scorer_failure_falls_back_to_neutral(
        self, client, donor, seeker, approved_listing, scorer
    ):
        scorer.fail = True
        await request_listing(client, seeker, approved_listing["id"])

        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert resp.status_code == 200
        assert resp.json()[0]["neediness_score"] == 5.0

    async def test_scorer_not_called_without_requests(
        self, client, donor, approved_listing, scorer
    ):
        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert resp.json() == []
        assert scorer.calls == 0

    async def test_slow_scorer_does_not_block_writers(
        self, client, donor, seeker, other_seeker, moderator, approved_listing, scorer
    ):
        other = await create_listing(client, donor, title="Boots")
        await approve(client, moderator, other["id"])
        await request_listing(client, seeker, approved_listing["id"])
        scorer.delay = 1.0

        async def review():
            return await client.get(
                f"/listings/{approved_listing['id']}/requests", headers=donor.headers
            )

        async def request_while_scoring():
            await asyncio.sleep(0.2)
            started = time.monotonic()
            req = await request_listing(client, other_seeker, other["id"])
            return req, time.monotonic() - started

        reviewed, (req, elapsed) = await asyncio.gather(review(), request_while_scoring())

        assert reviewed.status_code == 200
        assert req["status"] == "PENDING"
        assert elapsed < 0.5

    async def test_score_stored_without_touching_updated_at(
        self, client, donor, seeker, approved_listing, scorer, session_factory
    ):
        scorer.scores = {"cold": 8.5}
        req = await request_listing(client, seeker, approved_listing["id"], "cold")

        async with session_factory() as session:
            before = await session.get(DonationRequest, uuid.UUID(req["id"]))

        resp = await client.get(
            f"/listings/{approved_listing['id']}/requests", headers=donor.headers
        )
        assert resp.json()[0]["neediness_score"] == 8.5

        async with session_factory() as session:
            after = await session.get(DonationRequest, uuid.UUID(req["id"]))
        assert after.neediness_score == 8.5
        assert after.updated_at == before.updated_at

    async def test_my_requests_newest_first(
        self, client, donor, seeker, moderator, approved_listing
    ):
        other = await create_listing(client, donor, title="Boots")
        await approve(client, moderator, other["id"])

        older = await request_listing(client, seeker, approved_listing["id"])
        newer = await request_listing(client, seeker, other["id"])

        resp = await client.get("/requests/mine", headers=seeker.headers)
        assert [r["id"] for r in resp.json()] == [newer["id"], older["id"]]

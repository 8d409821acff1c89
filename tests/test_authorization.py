"""
Tests for authentication and role boundaries.

These tests verify two security properties:

1. **Authentication**: every endpoint except /health and /stats needs a
   valid bearer token for an active, provisioned user.

2. **Role enforcement**: members can't reach /admin/* endpoints, and
   moderators can't act as donors or seekers on member endpoints.
"""

import uuid
from datetime import timedelta

from jose import jwt
from sqlalchemy import update

from conftest import auth_headers, request_listing
from donation_exchange.config import settings
from donation_exchange.models.user import User
from donation_exchange.security import create_access_token, decode_access_token


class TestAuthentication:

    async def test_health_is_public(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_missing_token(self, client):
        resp = await client.get("/listings/mine")
        assert resp.status_code == 401

    async def test_garbage_token(self, client):
        resp = await client.get(
            "/listings/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401

    async def test_expired_token(self, client, donor):
        token = create_access_token({"sub": str(donor.id)}, timedelta(minutes=-1))
        resp = await client.get(
            "/listings/mine", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401

    async def test_token_signed_with_another_secret(self, client, donor):
        token = jwt.encode(
            {"sub": str(donor.id)}, "not-the-shared-secret", algorithm=settings.ALGORITHM
        )
        resp = await client.get(
            "/listings/mine", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401

    async def test_provider_token_claims(self, donor):
        claims = decode_access_token(create_access_token({"sub": str(donor.id)}))
        assert claims["sub"] == str(donor.id)
        assert claims["exp"] > 0

    async def test_token_for_unknown_user(self, client):
        resp = await client.get("/listings/mine", headers=auth_headers(uuid.uuid4()))
        assert resp.status_code == 401

    async def test_token_without_subject(self, client):
        token = create_access_token({"role": "member"})
        resp = await client.get(
            "/listings/mine", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401

    async def test_deactivated_user(self, client, donor, session_factory):
        async with session_factory() as session:
            await session.execute(
                update(User).where(User.id == donor.id).values(is_active=False)
            )
            await session.commit()

        resp = await client.get("/listings/mine", headers=donor.headers)
        assert resp.status_code == 401


class TestRoleEnforcement:

    async def test_member_cannot_moderate(self, client, donor, seeker):
        listing = await client.post(
            "/listings",
            json={
                "title": "Lamp",
                "description": "Desk lamp",
                "category": "home",
                "condition": "used",
                "contact": "555-0100",
            },
            headers=donor.headers,
        )
        resp = await client.put(
            f"/admin/listings/{listing.json()['id']}/approval",
            json={"approved": True},
            headers=donor.headers,
        )
        assert resp.status_code == 403

    async def test_member_cannot_provision_users(self, client, donor):
        resp = await client.post(
            "/admin/users",
            json={"email": "new@example.com", "first_name": "New", "last_name": "User"},
            headers=donor.headers,
        )
        assert resp.status_code == 403

    async def test_member_cannot_use_admin_delete(self, client, donor, approved_listing):
        resp = await client.delete(
            f"/admin/listings/{approved_listing['id']}", headers=donor.headers
        )
        assert resp.status_code == 403

    async def test_moderator_cannot_create_listing(self, client, moderator):
        resp = await client.post(
            "/listings",
            json={
                "title": "Lamp",
                "description": "Desk lamp",
                "category": "home",
                "condition": "used",
                "contact": "555-0100",
            },
            headers=moderator.headers,
        )
        assert resp.status_code == 403

    async def test_moderator_cannot_request(self, client, moderator, approved_listing):
        resp = await client.post(
            f"/listings/{approved_listing['id']}/requests",
            json={"message": "for me"},
            headers=moderator.headers,
        )
        assert resp.status_code == 403

    async def test_moderator_cannot_accept(
        self, client, moderator, seeker, approved_listing
    ):
        req = await request_listing(client, seeker, approved_listing["id"])
        resp = await client.post(
            f"/listings/{approved_listing['id']}/requests/{req['id']}/accept",
            headers=moderator.headers,
        )
        assert resp.status_code == 403


class TestProvisioning:

    async def test_moderator_provisions_member(self, client, moderator):
        subject = uuid.uuid4()
        resp = await client.post(
            "/admin/users",
            json={
                "email": "new@example.com",
                "first_name": "New",
                "last_name": "Member",
                "phone": "555-0300",
                "user_id": str(subject),
            },
            headers=moderator.headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["id"] == str(subject)
        assert body["user_type"] == "member"
        assert body["donation_count"] == 0

        # The identity provider's token for that subject now resolves
        me = await client.get("/users/me", headers=auth_headers(subject))
        assert me.status_code == 200
        assert me.json()["email"] == "new@example.com"

    async def test_duplicate_email(self, client, moderator, donor):
        resp = await client.post(
            "/admin/users",
            json={"email": donor.email, "first_name": "Dup", "last_name": "User"},
            headers=moderator.headers,
        )
        assert resp.status_code == 409
        assert resp.json()["error_type"] == "duplicate_email"

    async def test_invalid_email(self, client, moderator):
        resp = await client.post(
            "/admin/users",
            json={"email": "not-an-email", "first_name": "Bad", "last_name": "Email"},
            headers=moderator.headers,
        )
        assert resp.status_code == 422

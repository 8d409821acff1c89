#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample data for demos.

!! NOT FOR PRODUCTION !!
This script mints bearer tokens with the server's SECRET_KEY, standing in
for the external identity provider. It is intended ONLY for local demos
and frontend development.

Usage:
    # With the API server running on localhost:8000 (same .env / SECRET_KEY):
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

What gets created:
  - one moderator (provisioned directly in the database, since only a
    moderator can provision users through the API)
  - five members, provisioned by the moderator through POST /admin/users
  - donation listings in every lifecycle state: pending, approved with
    open requests, donated awaiting receipt, completed and rated
  - one requirement listing
"""

import argparse
import asyncio
import os
import random
import sys

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

MODERATOR = {
    "email": "moderator@donatedemo.org",
    "first_name": "Morgan",
    "last_name": "Moderator",
}

MEMBERS = [
    {"email": "alice.chen@example.com", "first_name": "Alice", "last_name": "Chen", "phone": "555-0101"},
    {"email": "bob.martinez@example.com", "first_name": "Bob", "last_name": "Martinez", "phone": "555-0102"},
    {"email": "carol.nguyen@example.com", "first_name": "Carol", "last_name": "Nguyen", "phone": "555-0103"},
    {"email": "dave.johnson@example.com", "first_name": "Dave", "last_name": "Johnson", "phone": "555-0104"},
    {"email": "erin.patel@example.com", "first_name": "Erin", "last_name": "Patel", "phone": "555-0105"},
]

DONATIONS = [
    ("Winter jacket", "Warm down jacket, size M", "clothing", "good"),
    ("Study desk", "Pine desk with two drawers", "furniture", "used"),
    ("Textbooks", "First-year chemistry and calculus", "books", "like new"),
    ("Baby stroller", "Foldable, recently cleaned", "kids", "good"),
    ("Laptop", "Older model, battery holds 2 hours", "electronics", "used"),
    ("Kitchen set", "Pots, pans and utensils", "home", "good"),
]

REQUEST_MESSAGES = [
    "I just moved here and have nothing for the cold.",
    "My daughter starts university next month.",
    "Ours broke last week and we can't replace it yet.",
    "Would really help while I look for work.",
    "Our family of five is sharing one of these.",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def mint_token(user_id: str) -> str:
    from donation_exchange.security import create_access_token
    return create_access_token({"sub": user_id})


async def provision_moderator() -> str:
    """Create the moderator profile directly in the database.

    Bootstrapping: POST /admin/users needs a moderator, so the first one
    is an operator action.
    """
    from sqlalchemy import select
    from donation_exchange.database import AsyncSessionLocal, engine
    from donation_exchange.models.user import User, UserType
    from donation_exchange.services import user_service

    async with AsyncSessionLocal() as session:
        existing = await session.scalar(select(User).where(User.email == MODERATOR["email"]))
        if existing is not None:
            user_id = existing.id
        else:
            user = await user_service.provision_user(
                session, user_type=UserType.ADMIN, **MODERATOR
            )
            user_id = user.id

    await engine.dispose()
    return str(user_id)


async def provision_member(client: httpx.AsyncClient, moderator_token: str, member: dict) -> str:
    resp = await client.post(
        f"{BASE_URL}/admin/users",
        json=member,
        headers=auth_header(moderator_token),
    )
    resp.raise_for_status()
    return resp.json()["id"]


async def create_listing(client: httpx.AsyncClient, token: str, body: dict) -> dict:
    resp = await client.post(f"{BASE_URL}/listings", json=body, headers=auth_header(token))
    resp.raise_for_status()
    return resp.json()


async def approve(client: httpx.AsyncClient, moderator_token: str, listing_id: str) -> None:
    resp = await client.put(
        f"{BASE_URL}/admin/listings/{listing_id}/approval",
        json={"approved": True},
        headers=auth_header(moderator_token),
    )
    resp.raise_for_status()


async def request_listing(client: httpx.AsyncClient, token: str, listing_id: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/listings/{listing_id}/requests",
        json={"message": random.choice(REQUEST_MESSAGES)},
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()


async def accept(client: httpx.AsyncClient, token: str, listing_id: str, request_id: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/listings/{listing_id}/requests/{request_id}/accept",
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn donation_exchange.main:app --reload\n")
            sys.exit(1)

        # --- Moderator ---
        print("Provisioning moderator...")
        moderator_id = await provision_moderator()
        moderator_token = mint_token(moderator_id)
        log(f"Moderator: {MODERATOR['email']}")

        # --- Members ---
        tokens: dict[str, str] = {}
        print("\nProvisioning members...")
        for member in MEMBERS:
            user_id = await provision_member(client, moderator_token, member)
            tokens[member["email"]] = mint_token(user_id)
            log(f"{member['first_name']} {member['last_name']} ({member['email']})")

        emails = [m["email"] for m in MEMBERS]

        # --- Listings ---
        print("\nCreating listings...")
        listings = []
        for i, (title, description, category, condition) in enumerate(DONATIONS):
            owner = emails[i % len(emails)]
            listing = await create_listing(client, tokens[owner], {
                "kind": "DONATION",
                "title": title,
                "description": description,
                "category": category,
                "condition": condition,
                "contact": MEMBERS[i % len(MEMBERS)]["phone"],
            })
            listings.append((owner, listing))
            log(f"{title} (by {owner})")

        await create_listing(client, tokens[emails[-1]], {
            "kind": "REQUIREMENT",
            "title": "Need a winter coat for a child",
            "description": "Size 8, any colour",
            "category": "clothing",
            "urgency": "HIGH",
            "contact": MEMBERS[-1]["phone"],
        })
        log("Requirement: winter coat for a child")

        # Leave the last listing PENDING for the moderation queue
        for _, listing in listings[:-1]:
            await approve(client, moderator_token, listing["id"])
        log(f"Approved {len(listings) - 1} listings, 1 left pending")

        # --- Requests, handoffs and feedback ---
        print("\nSimulating requests and handoffs...")
        for i, (owner, listing) in enumerate(listings[:-1]):
            seekers = [e for e in emails if e != owner]
            random.shuffle(seekers)
            requests = [
                await request_listing(client, tokens[s], listing["id"]) for s in seekers[:3]
            ]

            # Two listings stay open with pending requests
            if i >= 3:
                log(f"{listing['title']}: {len(requests)} pending requests")
                continue

            winner_email = seekers[0]
            txn = await accept(client, tokens[owner], listing["id"], requests[0]["id"])
            log(f"{listing['title']}: accepted request from {winner_email}")

            if i == 0:
                log("  awaiting receipt")
                continue

            resp = await client.post(
                f"{BASE_URL}/transactions/{txn['id']}/receive",
                headers=auth_header(tokens[winner_email]),
            )
            resp.raise_for_status()
            resp = await client.post(
                f"{BASE_URL}/transactions/{txn['id']}/feedback",
                json={"rating": random.randint(3, 5), "comment": "Thank you so much!"},
                headers=auth_header(tokens[winner_email]),
            )
            resp.raise_for_status()
            log(f"  received and rated {resp.json()['rating']} stars")

    # --- Summary ---
    print("\n========================================")
    print("  SEED COMPLETE — Bearer tokens")
    print("========================================")
    print(f"\n  {MODERATOR['email']} (MODERATOR)\n    {moderator_token}")
    for email, token in tokens.items():
        print(f"  {email}\n    {token}")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "donations.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample users, listings, requests and transactions for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())

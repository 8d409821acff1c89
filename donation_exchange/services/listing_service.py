"""
Listing service — the Listing Store.

This module handles:
  - Listing creation (always PENDING and unapproved)
  - Moderator approval / rejection
  - The two lifecycle moves made by other services:
      mark_donated()   — called by the matching service when a request is accepted
      mark_completed() — called by the transaction service when receipt is confirmed
  - Requestability checks for the request ledger
  - Deletion by owner or moderator while no transaction references the listing

Guarded updates:
  mark_donated() and mark_completed() never read-then-write. They issue
  UPDATE ... WHERE status = <expected> and check the affected row count.
  If a concurrent caller already moved the listing, zero rows match and
  InvalidTransitionError is raised, which aborts the caller's whole unit of
  work. This guarded UPDATE is the serialization point for competing
  accepts.
"""

import logging
import uuid

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import unit_of_work
from donation_exchange.exceptions import ForbiddenError, InvalidTransitionError, NotFoundError
from donation_exchange.lifecycle import (
    ListingKind,
    ListingStatus,
    RequestStatus,
    Urgency,
    ensure_listing_transition,
)
from donation_exchange.models.listing import Listing
from donation_exchange.models.request import DonationRequest
from donation_exchange.models.transaction import Transaction

logger = logging.getLogger(__name__)


async def create_listing(
    db: AsyncSession,
    owner_id: uuid.UUID,
    kind: ListingKind,
    title: str,
    description: str,
    category: str,
    contact: str,
    condition: str | None = None,
    urgency: Urgency | None = None,
) -> Listing:
    """
    Create a new listing awaiting moderation.

    Donations must describe their condition; requirements must state
    their urgency.

    Raises:
        ValueError: If the kind-specific field is missing.
    """
    if kind == ListingKind.DONATION and not condition:
        raise ValueError("A donation listing needs a condition")
    if kind == ListingKind.REQUIREMENT and urgency is None:
        raise ValueError("A requirement listing needs an urgency")

    async with unit_of_work(db):
        listing = Listing(
            owner_id=owner_id,
            kind=kind,
            title=title,
            description=description,
            category=category,
            contact=contact,
            condition=condition if kind == ListingKind.DONATION else None,
            urgency=urgency if kind == ListingKind.REQUIREMENT else None,
            is_approved=False,
            status=ListingStatus.PENDING,
        )
        db.add(listing)
        await db.flush()

    logger.info("Listing %s (%s) created by %s", listing.id, kind.value, owner_id)
    return listing


async def get_listing(
    db: AsyncSession,
    listing_id: uuid.UUID,
    for_update: bool = False,
) -> Listing:
    """
    Get a listing by ID.

    With for_update=True the row is locked on PostgreSQL (no-op on SQLite,
    where the whole transaction already holds the write lock).

    Raises:
        NotFoundError: If the listing doesn't exist.
    """
    query = select(Listing).where(Listing.id == listing_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    listing = result.scalar_one_or_none()

    if listing is None:
        raise NotFoundError("Listing", listing_id)
    return listing


async def list_owned_listings(db: AsyncSession, owner_id: uuid.UUID) -> list[Listing]:
    """List the owner's listings, newest first."""
    result = await db.execute(
        select(Listing)
        .where(Listing.owner_id == owner_id)
        .order_by(Listing.created_at.desc(), Listing.id)
    )
    return list(result.scalars().all())


async def set_approval(
    db: AsyncSession,
    listing_id: uuid.UUID,
    approved: bool,
) -> Listing:
    """
    Moderator decision on a listing.

    approved=True moves PENDING or REJECTED to APPROVED; approved=False
    moves PENDING or APPROVED to REJECTED. Repeating the current decision
    changes nothing.

    Raises:
        NotFoundError: If the listing doesn't exist.
        InvalidTransitionError: If the listing is already DONATED or COMPLETED.
    """
    target = ListingStatus.APPROVED if approved else ListingStatus.REJECTED

    async with unit_of_work(db):
        listing = await get_listing(db, listing_id, for_update=True)
        if listing.status == target:
            return listing

        ensure_listing_transition(listing.status, target)
        listing.status = target
        listing.is_approved = approved
        await db.flush()

    logger.info("Listing %s moderated: %s", listing_id, target.value)
    return listing


async def _move_listing(
    db: AsyncSession,
    listing_id: uuid.UUID,
    expected: ListingStatus,
    target: ListingStatus,
) -> None:
    ensure_listing_transition(expected, target)
    result = await db.execute(
        update(Listing)
        .where(Listing.id == listing_id, Listing.status == expected)
        .values(status=target)
    )
    if result.rowcount == 1:
        return

    current = await db.scalar(select(Listing.status).where(Listing.id == listing_id))
    if current is None:
        raise NotFoundError("Listing", listing_id)
    raise InvalidTransitionError("Listing", current, target)


async def mark_donated(db: AsyncSession, listing_id: uuid.UUID) -> None:
    """
    APPROVED -> DONATED. Part of the caller's unit of work; does not commit.

    Raises:
        InvalidTransitionError: If the listing is no longer APPROVED
            (e.g. a competing accept already won).
    """
    await _move_listing(db, listing_id, ListingStatus.APPROVED, ListingStatus.DONATED)


async def mark_completed(db: AsyncSession, listing_id: uuid.UUID) -> None:
    """
    DONATED -> COMPLETED. Part of the caller's unit of work; does not commit.

    Raises:
        InvalidTransitionError: If the listing is not DONATED.
    """
    await _move_listing(db, listing_id, ListingStatus.DONATED, ListingStatus.COMPLETED)


async def is_requestable(db: AsyncSession, listing: Listing) -> bool:
    """True iff the listing is an APPROVED donation with no ACCEPTED request."""
    if listing.kind != ListingKind.DONATION or listing.status != ListingStatus.APPROVED:
        return False

    has_accepted = await db.scalar(
        select(
            exists().where(
                DonationRequest.listing_id == listing.id,
                DonationRequest.status == RequestStatus.ACCEPTED,
            )
        )
    )
    return not has_accepted


async def delete_listing(
    db: AsyncSession,
    listing_id: uuid.UUID,
    actor_id: uuid.UUID,
    is_moderator: bool = False,
) -> None:
    """
    Delete a listing together with its requests.

    Raises:
        NotFoundError: If the listing doesn't exist.
        ForbiddenError: If the actor is neither the owner nor a moderator.
        InvalidTransitionError: If a transaction references the listing.
    """
    async with unit_of_work(db):
        listing = await get_listing(db, listing_id, for_update=True)
        if not is_moderator and listing.owner_id != actor_id:
            raise ForbiddenError("Only the owner or a moderator can delete this listing")

        has_transaction = await db.scalar(
            select(exists().where(Transaction.listing_id == listing_id))
        )
        if has_transaction:
            raise InvalidTransitionError(
                "Listing",
                listing.status,
                detail=f"Listing {listing_id} has a transaction and cannot be deleted",
            )

        await db.execute(
            delete(DonationRequest).where(DonationRequest.listing_id == listing_id)
        )
        await db.delete(listing)
        await db.flush()

    logger.info("Listing %s deleted by %s", listing_id, actor_id)

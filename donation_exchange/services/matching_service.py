"""
Matching service — accept one request, reject the rest.

THIS IS THE CONCURRENCY-CRITICAL PART OF THE PROJECT. Accepting a request
is four writes that must commit together or not at all:

  a. the chosen request:            PENDING  -> ACCEPTED
  b. every other PENDING request:   PENDING  -> REJECTED
  c. the listing:                   APPROVED -> DONATED
  d. a new Transaction linking listing, request, donor and receiver

All four run inside one unit_of_work(). Any failure part-way (including
losing a race) rolls back every write.

Racing accepts:
  Two owners' clicks (or two browser tabs) may try to accept different
  requests on the same listing at once. The listing move (c) is a guarded
  UPDATE ... WHERE status = 'APPROVED' — only one caller can match the
  row. The loser sees zero affected rows and gets InvalidTransitionError.
  The UNIQUE constraint on transactions.listing_id is the last line of
  defence: a second Transaction for the listing can never be inserted.

Notification:
  The seeker is notified only after the unit of work commits. A failing
  notifier is logged and ignored; it cannot roll back the accept.
"""

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import unit_of_work
from donation_exchange.exceptions import ForbiddenError, InvalidTransitionError
from donation_exchange.lifecycle import (
    ListingKind,
    ListingStatus,
    RequestStatus,
    ensure_request_transition,
)
from donation_exchange.models.request import DonationRequest
from donation_exchange.models.transaction import Transaction
from donation_exchange.models.user import User
from donation_exchange.notifications import Notifier, send_acceptance
from donation_exchange.services import listing_service, request_service

logger = logging.getLogger(__name__)


async def accept_request(
    db: AsyncSession,
    listing_id: uuid.UUID,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
    notifier: Notifier,
) -> Transaction:
    """
    Accept one request on a listing and open the handoff transaction.

    Preconditions are checked before any write, in this order:
      1. the actor owns the listing, and the listing is a donation
      2. the request belongs to the listing and is PENDING
      3. the listing is APPROVED

    Args:
        db: Database session.
        listing_id: The donation listing.
        request_id: The request to accept.
        actor_id: The authenticated user (must be the listing owner).
        notifier: Where to send the acceptance notice after commit.

    Returns:
        The created Transaction.

    Raises:
        NotFoundError: If the listing or request doesn't exist.
        ForbiddenError: If the actor doesn't own the listing, or the
            listing is a requirement rather than a donation.
        InvalidTransitionError: If the request isn't a PENDING request on
            this listing, or the listing isn't APPROVED (including when a
            concurrent accept already won).
    """
    async with unit_of_work(db):
        listing = await listing_service.get_listing(db, listing_id, for_update=True)
        if listing.owner_id != actor_id:
            raise ForbiddenError("Only the listing owner can accept requests")
        if listing.kind != ListingKind.DONATION:
            raise ForbiddenError("Requests can only be accepted on donation listings")

        request = await request_service.get_request(db, request_id, for_update=True)
        if request.listing_id != listing_id:
            raise InvalidTransitionError(
                "Request",
                request.status,
                detail=f"Request {request_id} does not belong to listing {listing_id}",
            )
        ensure_request_transition(request.status, RequestStatus.ACCEPTED)
        if listing.status != ListingStatus.APPROVED:
            raise InvalidTransitionError("Listing", listing.status, ListingStatus.DONATED)

        # (c) first: this guarded update is the serialization point
        await listing_service.mark_donated(db, listing_id)

        # (a)
        accepted = await db.execute(
            update(DonationRequest)
            .where(
                DonationRequest.id == request_id,
                DonationRequest.status == RequestStatus.PENDING,
            )
            .values(status=RequestStatus.ACCEPTED)
        )
        if accepted.rowcount != 1:
            raise InvalidTransitionError("Request", RequestStatus.REJECTED, RequestStatus.ACCEPTED)

        # (b)
        rejected = await db.execute(
            update(DonationRequest)
            .where(
                DonationRequest.listing_id == listing_id,
                DonationRequest.id != request_id,
                DonationRequest.status == RequestStatus.PENDING,
            )
            .values(status=RequestStatus.REJECTED)
        )
        rejected_count = rejected.rowcount

        # (d)
        transaction = Transaction(
            listing_id=listing_id,
            request_id=request_id,
            donor_id=listing.owner_id,
            receiver_id=request.seeker_id,
            is_received=False,
        )
        db.add(transaction)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise InvalidTransitionError(
                "Listing",
                ListingStatus.DONATED,
                detail=f"Listing {listing_id} already has a transaction",
            ) from exc

        seeker = await db.get(User, request.seeker_id)
        donor = await db.get(User, listing.owner_id)

    logger.info(
        "Request %s accepted on listing %s: transaction %s, %d competing requests rejected",
        request_id,
        listing_id,
        transaction.id,
        rejected_count,
    )

    await send_acceptance(notifier, transaction, listing, seeker, donor)
    return transaction


async def reject_request(
    db: AsyncSession,
    listing_id: uuid.UUID,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> DonationRequest:
    """
    Owner declines one PENDING request. Nothing else changes.

    Raises:
        NotFoundError: If the listing or request doesn't exist.
        ForbiddenError: If the actor doesn't own the listing.
        InvalidTransitionError: If the request isn't a PENDING request on this listing.
    """
    async with unit_of_work(db):
        listing = await listing_service.get_listing(db, listing_id)
        if listing.owner_id != actor_id:
            raise ForbiddenError("Only the listing owner can reject requests")

        request = await request_service.get_request(db, request_id, for_update=True)
        if request.listing_id != listing_id:
            raise InvalidTransitionError(
                "Request",
                request.status,
                detail=f"Request {request_id} does not belong to listing {listing_id}",
            )

        await request_service.reject_pending(db, request)

    logger.info("Request %s rejected by owner of listing %s", request_id, listing_id)
    return request

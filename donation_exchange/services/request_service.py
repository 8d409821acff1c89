"""
Request service — the Request Ledger.

This module handles:
  - Seekers creating requests against requestable donation listings
  - Seekers cancelling their own PENDING requests
  - Owner review of PENDING requests, annotated with neediness scores
  - A seeker's view of their own requests

One pending request per seeker per listing:
  Checked here before inserting, and backed by a partial unique index.
  If two submissions from the same seeker race past the check, the second
  INSERT violates the index and is reported as DuplicatePendingError.

Neediness scores are advisory. Scoring runs through score_safely(), which
cannot raise, outside any database transaction. The result is stored for
display only; it never reorders storage, bumps updated_at or gates any
transition.
"""

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from donation_exchange.database import unit_of_work
from donation_exchange.exceptions import (
    DuplicatePendingError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    NotRequestableError,
    UnavailableError,
)
from donation_exchange.lifecycle import RequestStatus, ensure_request_transition
from donation_exchange.models.request import DonationRequest
from donation_exchange.scoring import MessageToScore, NeedinessScorer, score_safely
from donation_exchange.services import listing_service

logger = logging.getLogger(__name__)


async def get_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    for_update: bool = False,
) -> DonationRequest:
    """
    Get a request by ID.

    Raises:
        NotFoundError: If the request doesn't exist.
    """
    query = select(DonationRequest).where(DonationRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    request = result.scalar_one_or_none()

    if request is None:
        raise NotFoundError("Request", request_id)
    return request


async def create_request(
    db: AsyncSession,
    listing_id: uuid.UUID,
    seeker_id: uuid.UUID,
    message: str,
) -> DonationRequest:
    """
    Ask for a donation.

    Raises:
        NotFoundError: If the listing doesn't exist.
        ForbiddenError: If the seeker owns the listing.
        NotRequestableError: If the listing isn't an APPROVED donation
            without an accepted request.
        DuplicatePendingError: If the seeker already has a PENDING request on it.
    """
    async with unit_of_work(db):
        listing = await listing_service.get_listing(db, listing_id, for_update=True)
        if listing.owner_id == seeker_id:
            raise ForbiddenError("You cannot request your own listing")

        if not await listing_service.is_requestable(db, listing):
            raise NotRequestableError(listing_id)

        existing = await db.scalar(
            select(DonationRequest.id).where(
                DonationRequest.listing_id == listing_id,
                DonationRequest.seeker_id == seeker_id,
                DonationRequest.status == RequestStatus.PENDING,
            )
        )
        if existing is not None:
            raise DuplicatePendingError(listing_id)

        request = DonationRequest(
            listing_id=listing_id,
            seeker_id=seeker_id,
            message=message,
            status=RequestStatus.PENDING,
        )
        db.add(request)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise DuplicatePendingError(listing_id) from exc

    logger.info("Request %s created on listing %s by %s", request.id, listing_id, seeker_id)
    return request


async def cancel_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> DonationRequest:
    """
    Withdraw a PENDING request. The request is recorded as REJECTED.

    Raises:
        NotFoundError: If the request doesn't exist.
        ForbiddenError: If the actor isn't the request's seeker.
        InvalidTransitionError: If the request is no longer PENDING.
    """
    async with unit_of_work(db):
        request = await get_request(db, request_id, for_update=True)
        if request.seeker_id != actor_id:
            raise ForbiddenError("You are not authorized to cancel this request")

        await reject_pending(db, request)

    logger.info("Request %s cancelled by its seeker", request_id)
    return request


async def reject_pending(db: AsyncSession, request: DonationRequest) -> None:
    """
    PENDING -> REJECTED for one request, guarded on the current status.

    Part of the caller's unit of work; does not commit.
    """
    ensure_request_transition(request.status, RequestStatus.REJECTED)
    result = await db.execute(
        update(DonationRequest)
        .where(
            DonationRequest.id == request.id,
            DonationRequest.status == RequestStatus.PENDING,
        )
        .values(status=RequestStatus.REJECTED)
    )
    await db.refresh(request)
    if result.rowcount != 1:
        raise InvalidTransitionError("Request", request.status, RequestStatus.REJECTED)


async def list_pending(
    db: AsyncSession,
    listing_id: uuid.UUID,
    actor_id: uuid.UUID,
    scorer: NeedinessScorer,
) -> list[DonationRequest]:
    """
    PENDING requests on a listing for its owner, oldest first (ties by id).

    Each returned request carries the latest advisory neediness_score.

    The read transaction is closed before the scorer is called, so a slow
    classifier never holds the database write lock. Scores are then stored
    in a second short transaction that leaves updated_at alone; if that
    write can't get the lock the scores are still returned.

    Raises:
        NotFoundError: If the listing doesn't exist.
        ForbiddenError: If the actor doesn't own the listing.
    """
    async with unit_of_work(db):
        listing = await listing_service.get_listing(db, listing_id)
        if listing.owner_id != actor_id:
            raise ForbiddenError("Only the listing owner can review its requests")

        result = await db.execute(
            select(DonationRequest)
            .where(
                DonationRequest.listing_id == listing_id,
                DonationRequest.status == RequestStatus.PENDING,
            )
            .order_by(DonationRequest.created_at, DonationRequest.id)
        )
        requests = list(result.scalars().all())

    if not requests:
        return requests

    scores = await score_safely(
        scorer,
        [MessageToScore(id=r.id, message=r.message) for r in requests],
    )

    try:
        async with unit_of_work(db):
            for request in requests:
                await db.execute(
                    update(DonationRequest)
                    .where(DonationRequest.id == request.id)
                    .values(
                        neediness_score=scores[request.id],
                        updated_at=DonationRequest.updated_at,
                    )
                    .execution_options(synchronize_session=False)
                )
    except UnavailableError:
        logger.warning("Could not store neediness scores for listing %s", listing_id)

    for request in requests:
        set_committed_value(request, "neediness_score", scores[request.id])
    return requests


async def list_my_requests(db: AsyncSession, seeker_id: uuid.UUID) -> list[DonationRequest]:
    """All of a seeker's requests, newest first."""
    result = await db.execute(
        select(DonationRequest)
        .where(DonationRequest.seeker_id == seeker_id)
        .order_by(DonationRequest.created_at.desc(), DonationRequest.id)
    )
    return list(result.scalars().all())

"""
Listings router — listings, the requests made on them, and matching.

Member endpoints:
  POST   /listings                                  — Create a listing (awaits moderation)
  GET    /listings/mine                             — List own listings
  GET    /listings/{listing_id}                     — Get a listing
  DELETE /listings/{listing_id}                     — Delete own listing (no transaction yet)
  POST   /listings/{listing_id}/requests            — Request a donation
  GET    /listings/{listing_id}/requests            — Owner: review pending requests
  POST   /listings/{listing_id}/requests/{id}/accept — Owner: accept one, reject the rest
  POST   /listings/{listing_id}/requests/{id}/reject — Owner: reject one request

Moderation endpoints live in the admin router.
"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import get_db
from donation_exchange.dependencies import get_current_member, get_notifier, get_scorer
from donation_exchange.models.user import User
from donation_exchange.notifications import Notifier
from donation_exchange.schemas.listing import ListingCreateRequest, ListingResponse
from donation_exchange.schemas.request import DonationRequestCreate, DonationRequestResponse
from donation_exchange.schemas.transaction import TransactionResponse
from donation_exchange.scoring import NeedinessScorer
from donation_exchange.services import (
    listing_service,
    matching_service,
    request_service,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a listing",
)
async def create_listing(
    request: ListingCreateRequest,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Offer a donation or post a requirement.

    New listings are PENDING until a moderator approves them; only
    approved donations accept requests.
    """
    return await listing_service.create_listing(
        db=db,
        owner_id=member.id,
        kind=request.kind,
        title=request.title,
        description=request.description,
        category=request.category,
        contact=request.contact,
        condition=request.condition,
        urgency=request.urgency,
    )


@router.get(
    "/mine",
    response_model=list[ListingResponse],
    summary="List own listings",
)
async def list_my_listings(
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await listing_service.list_owned_listings(db, member.id)


@router.get(
    "/{listing_id}",
    response_model=ListingResponse,
    summary="Get a listing",
)
async def get_listing(
    listing_id: uuid.UUID,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await listing_service.get_listing(db, listing_id)


@router.delete(
    "/{listing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete own listing",
)
async def delete_listing(
    listing_id: uuid.UUID,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """Only possible while no transaction references the listing."""
    await listing_service.delete_listing(db, listing_id, actor_id=member.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Requests on a listing
# ---------------------------------------------------------------------------

@router.post(
    "/{listing_id}/requests",
    response_model=DonationRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a donation",
)
async def create_request(
    listing_id: uuid.UUID,
    request: DonationRequestCreate,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Ask the donor for the item, explaining why you need it.

    Fails with 409 if the listing isn't open for requests or you already
    have a pending request on it.
    """
    return await request_service.create_request(
        db=db,
        listing_id=listing_id,
        seeker_id=member.id,
        message=request.message,
    )


@router.get(
    "/{listing_id}/requests",
    response_model=list[DonationRequestResponse],
    summary="Review pending requests (owner only)",
)
async def list_pending_requests(
    listing_id: uuid.UUID,
    rank: Literal["created", "neediness"] = Query(
        "created",
        description="Display order: creation time, or advisory neediness score (highest first)",
    ),
    member: User = Depends(get_current_member),
    scorer: NeedinessScorer = Depends(get_scorer),
    db: AsyncSession = Depends(get_db),
):
    """
    Pending requests, oldest first, each with an advisory neediness score.

    rank=neediness only re-sorts this response; it has no effect on which
    request may be accepted.
    """
    requests = await request_service.list_pending(db, listing_id, member.id, scorer)
    if rank == "neediness":
        requests = sorted(requests, key=lambda r: r.neediness_score, reverse=True)
    return requests


@router.post(
    "/{listing_id}/requests/{request_id}/accept",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Accept a request (owner only)",
)
async def accept_request(
    listing_id: uuid.UUID,
    request_id: uuid.UUID,
    member: User = Depends(get_current_member),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """
    Accept one request. In one atomic step every other pending request is
    rejected, the listing becomes DONATED and a transaction is opened.
    The seeker is then notified with your contact details.
    """
    return await matching_service.accept_request(
        db=db,
        listing_id=listing_id,
        request_id=request_id,
        actor_id=member.id,
        notifier=notifier,
    )


@router.post(
    "/{listing_id}/requests/{request_id}/reject",
    response_model=DonationRequestResponse,
    summary="Reject a request (owner only)",
)
async def reject_request(
    listing_id: uuid.UUID,
    request_id: uuid.UUID,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await matching_service.reject_request(
        db=db,
        listing_id=listing_id,
        request_id=request_id,
        actor_id=member.id,
    )

"""
Requests router — a seeker's own requests.

Endpoints:
  GET  /requests/mine                — List own requests, newest first
  POST /requests/{request_id}/cancel — Withdraw a pending request
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import get_db
from donation_exchange.dependencies import get_current_member
from donation_exchange.models.user import User
from donation_exchange.schemas.request import DonationRequestResponse
from donation_exchange.services import request_service

router = APIRouter()


@router.get(
    "/mine",
    response_model=list[DonationRequestResponse],
    summary="List own requests",
)
async def list_my_requests(
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await request_service.list_my_requests(db, member.id)


@router.post(
    "/{request_id}/cancel",
    response_model=DonationRequestResponse,
    summary="Cancel own pending request",
)
async def cancel_request(
    request_id: uuid.UUID,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Withdraw a request before the donor decides. The request is recorded
    as REJECTED. Accepted or already rejected requests can't be cancelled.
    """
    return await request_service.cancel_request(db, request_id, member.id)

"""
Transactions router — handoff tracking and feedback.

Endpoints (donor or receiver of the transaction only):
  GET  /transactions                        — List own transactions with feedback
  GET  /transactions/{transaction_id}       — Get a single transaction
  POST /transactions/{transaction_id}/receive  — Receiver confirms the handoff
  POST /transactions/{transaction_id}/feedback — Receiver rates the donor
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import get_db
from donation_exchange.dependencies import get_current_member
from donation_exchange.models.user import User
from donation_exchange.schemas.transaction import (
    FeedbackCreateRequest,
    FeedbackResponse,
    TransactionResponse,
    TransactionWithFeedbackResponse,
)
from donation_exchange.services import feedback_service, transaction_service

router = APIRouter()


@router.get(
    "",
    response_model=list[TransactionWithFeedbackResponse],
    summary="List own transactions",
)
async def list_transactions(
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """Transactions where you are the donor or the receiver, newest first."""
    pairs = await transaction_service.list_transactions(db, member.id)
    return [
        TransactionWithFeedbackResponse(
            **TransactionResponse.model_validate(txn).model_dump(),
            feedback=FeedbackResponse.model_validate(feedback) if feedback else None,
        )
        for txn, feedback in pairs
    ]


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, transaction_id, member.id)


@router.post(
    "/{transaction_id}/receive",
    response_model=TransactionResponse,
    summary="Confirm the donation was received",
)
async def confirm_received(
    transaction_id: uuid.UUID,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Mark the donation as received. The listing is completed and the donor's
    donation count goes up by one. Confirming twice is harmless.
    """
    return await transaction_service.confirm_received(db, transaction_id, member.id)


@router.post(
    "/{transaction_id}/feedback",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Rate the donor",
)
async def submit_feedback(
    transaction_id: uuid.UUID,
    request: FeedbackCreateRequest,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Leave a 1-5 star rating (and optional comment) once the donation has
    been received. Only one feedback per transaction.
    """
    return await feedback_service.submit_feedback(
        db=db,
        transaction_id=transaction_id,
        actor_id=member.id,
        rating=request.rating,
        comment=request.comment,
    )

"""
Pydantic schemas for Transaction and Feedback endpoints.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from donation_exchange.lifecycle import TransactionState


class FeedbackCreateRequest(BaseModel):
    """
    Request body for POST /transactions/{id}/feedback.

    The rating is taken as sent and checked by the feedback service, so a
    fractional, string, boolean or out-of-range rating is reported as
    invalid_rating like any other domain error.
    """
    rating: Any
    comment: str | None = Field(None, max_length=2000)


class FeedbackResponse(BaseModel):
    """Public representation of feedback."""
    id: uuid.UUID
    transaction_id: uuid.UUID
    giver_id: uuid.UUID
    receiver_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    """Public representation of a transaction."""
    id: uuid.UUID
    listing_id: uuid.UUID
    request_id: uuid.UUID
    donor_id: uuid.UUID
    receiver_id: uuid.UUID
    is_received: bool
    state: TransactionState
    completed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionWithFeedbackResponse(TransactionResponse):
    """A transaction as listed on the caller's dashboard."""
    feedback: FeedbackResponse | None = None

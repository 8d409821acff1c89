"""
Pydantic schemas for donation request endpoints.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from donation_exchange.lifecycle import RequestStatus


class DonationRequestCreate(BaseModel):
    """Request body for POST /listings/{id}/requests."""
    message: str = Field(min_length=1, max_length=1000)


class DonationRequestResponse(BaseModel):
    """Public representation of a request."""
    id: uuid.UUID
    listing_id: uuid.UUID
    seeker_id: uuid.UUID
    message: str
    status: RequestStatus
    neediness_score: float | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

"""
Pydantic schemas for Listing endpoints.

A listing is either a DONATION (needs a condition) or a REQUIREMENT
(needs an urgency); the request body is validated accordingly before the
service runs.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from donation_exchange.lifecycle import ListingKind, ListingStatus, Urgency


class ListingCreateRequest(BaseModel):
    """Request body for POST /listings."""
    kind: ListingKind = ListingKind.DONATION
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=50)
    contact: str = Field(min_length=1, max_length=100)
    condition: str | None = Field(None, max_length=50, description="Donations only")
    urgency: Urgency | None = Field(None, description="Requirements only")

    @model_validator(mode="after")
    def kind_specific_fields(self):
        """Donations describe their condition; requirements their urgency."""
        if self.kind == ListingKind.DONATION and not self.condition:
            raise ValueError("A donation listing needs a condition")
        if self.kind == ListingKind.REQUIREMENT and self.urgency is None:
            raise ValueError("A requirement listing needs an urgency")
        return self


class ListingResponse(BaseModel):
    """Public representation of a listing."""
    id: uuid.UUID
    owner_id: uuid.UUID
    kind: ListingKind
    title: str
    description: str
    category: str
    condition: str | None
    urgency: Urgency | None
    contact: str
    is_approved: bool
    status: ListingStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ApprovalRequest(BaseModel):
    """Request body for PUT /admin/listings/{id}/approval."""
    approved: bool

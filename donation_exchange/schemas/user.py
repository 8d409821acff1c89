"""
Pydantic schemas for user profiles and reputation.
"""

import uuid

from pydantic import BaseModel, EmailStr, Field

from donation_exchange.models.user import UserType


class UserProvisionRequest(BaseModel):
    """Request body for POST /admin/users."""
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    user_type: UserType = UserType.MEMBER
    user_id: uuid.UUID | None = Field(
        None, description="Identity provider subject id, if already assigned"
    )


class ReputationResponse(BaseModel):
    """Donor-side running totals."""
    user_id: uuid.UUID
    donation_count: int
    total_rating: int
    rating_count: int
    average_rating: float


class UserResponse(BaseModel):
    """Public representation of a user, including reputation."""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None
    user_type: UserType
    donation_count: int
    total_rating: int
    rating_count: int
    average_rating: float

    model_config = {"from_attributes": True}


class LeaderboardEntry(BaseModel):
    """One donor on the leaderboard."""
    id: uuid.UUID
    first_name: str
    last_name: str
    donation_count: int
    total_rating: int
    rating_count: int
    average_rating: float

    model_config = {"from_attributes": True}


class PlatformStatsResponse(BaseModel):
    """Platform-wide counters for GET /stats."""
    total_donations: int
    active_donors: int
    items_requested: int
    recent_listings: int

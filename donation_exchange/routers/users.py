"""
Users router — profiles, donor reputation and platform stats.

Endpoints:
  GET /users/me                 — Current profile with reputation totals
  GET /users/{user_id}/reputation — Any user's reputation totals
  GET /leaderboard              — Top donors
  GET /stats                    — Platform-wide counters (public)
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import get_db
from donation_exchange.dependencies import get_current_user
from donation_exchange.models.user import User
from donation_exchange.schemas.user import (
    LeaderboardEntry,
    PlatformStatsResponse,
    ReputationResponse,
    UserResponse,
)
from donation_exchange.services import reputation_service, stats_service

router = APIRouter()


@router.get(
    "/users/me",
    response_model=UserResponse,
    summary="Get current profile",
)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.get(
    "/users/{user_id}/reputation",
    response_model=ReputationResponse,
    summary="Get a user's reputation",
)
async def get_reputation(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Donation count and rating totals. The average is total/count rounded to
    one decimal, 0.0 while the user has no ratings.
    """
    target = await reputation_service.get_reputation(db, user_id)
    return ReputationResponse(
        user_id=target.id,
        donation_count=target.donation_count,
        total_rating=target.total_rating,
        rating_count=target.rating_count,
        average_rating=target.average_rating,
    )


@router.get(
    "/leaderboard",
    response_model=list[LeaderboardEntry],
    summary="Top donors",
)
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Donors ordered by completed donations, then by total rating."""
    return await reputation_service.leaderboard(db, limit=limit)


@router.get(
    "/stats",
    response_model=PlatformStatsResponse,
    summary="Platform stats",
)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """
    Matched donations, donors with a donation listing, requests still
    pending, and listings created in the last seven days. No login needed.
    """
    return await stats_service.platform_stats(db)

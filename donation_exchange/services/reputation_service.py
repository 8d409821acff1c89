"""
Reputation service — the donor-side running totals.

Counters on User are changed only through record_donation() and
record_rating(), and only as relative UPDATEs:

    UPDATE users SET donation_count = donation_count + 1 WHERE id = :donor

The increment is computed by the database inside the caller's unit of
work, never read into Python, bumped and written back. Two transactions
crediting the same donor concurrently therefore cannot lose an update.

Read side:
  - get_reputation(): one user's totals and average rating
  - leaderboard(): top donors by donation count, then total rating
"""

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.exceptions import NotFoundError
from donation_exchange.models.user import User


async def record_donation(db: AsyncSession, donor_id: uuid.UUID) -> None:
    """donation_count += 1. Part of the caller's unit of work."""
    result = await db.execute(
        update(User)
        .where(User.id == donor_id)
        .values(donation_count=User.donation_count + 1)
    )
    if result.rowcount != 1:
        raise NotFoundError("User", donor_id)


async def record_rating(db: AsyncSession, donor_id: uuid.UUID, rating: int) -> None:
    """total_rating += rating, rating_count += 1. Part of the caller's unit of work."""
    result = await db.execute(
        update(User)
        .where(User.id == donor_id)
        .values(
            total_rating=User.total_rating + rating,
            rating_count=User.rating_count + 1,
        )
    )
    if result.rowcount != 1:
        raise NotFoundError("User", donor_id)


async def get_reputation(db: AsyncSession, user_id: uuid.UUID) -> User:
    """
    Load a user's current reputation totals straight from the database.

    Raises:
        NotFoundError: If the user doesn't exist.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def leaderboard(db: AsyncSession, limit: int = 10) -> list[User]:
    """Donors with at least one completed donation, best first."""
    result = await db.execute(
        select(User)
        .where(User.donation_count > 0)
        .order_by(User.donation_count.desc(), User.total_rating.desc(), User.id)
        .limit(limit)
    )
    return list(result.scalars().all())

"""
Stats service — platform-wide counters for the landing page.

All four numbers are plain COUNT queries read in one session; none of
them is cached or stored.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.lifecycle import ListingKind, RequestStatus
from donation_exchange.models.listing import Listing
from donation_exchange.models.request import DonationRequest
from donation_exchange.models.transaction import Transaction

RECENT_LISTING_DAYS = 7


async def platform_stats(db: AsyncSession, now: datetime | None = None) -> dict:
    """
    Totals across the whole platform.

    Returns:
        total_donations: matched donations (one per Transaction)
        active_donors: users who have posted at least one donation listing
        items_requested: requests still PENDING
        recent_listings: listings of either kind created in the last 7 days
    """
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=RECENT_LISTING_DAYS)

    total_donations = await db.scalar(select(func.count(Transaction.id)))
    active_donors = await db.scalar(
        select(func.count(func.distinct(Listing.owner_id))).where(
            Listing.kind == ListingKind.DONATION
        )
    )
    items_requested = await db.scalar(
        select(func.count(DonationRequest.id)).where(
            DonationRequest.status == RequestStatus.PENDING
        )
    )
    recent_listings = await db.scalar(
        select(func.count(Listing.id)).where(Listing.created_at >= since)
    )

    return {
        "total_donations": total_donations,
        "active_donors": active_donors,
        "items_requested": items_requested,
        "recent_listings": recent_listings,
    }

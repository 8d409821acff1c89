"""
DonationRequest model — a seeker's interest in a donation listing.

Each request starts PENDING. When the listing owner accepts one request,
that request becomes ACCEPTED and every other PENDING request on the
listing becomes REJECTED in the same database transaction. A seeker can
also cancel their own PENDING request (which records it as REJECTED).

One pending request per seeker per listing:
  A partial unique index on (listing_id, seeker_id) WHERE status = 'PENDING'
  backs up the service-level check, so two concurrent submissions from the
  same seeker cannot both land. Once a request is rejected the seeker may
  ask again.

neediness_score:
  The last advisory score returned by the external scorer. Display only —
  nothing in the lifecycle reads it.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Float, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from donation_exchange.database import Base
from donation_exchange.lifecycle import RequestStatus


class DonationRequest(Base):
    __tablename__ = "donation_requests"

    __table_args__ = (
        Index(
            "uq_donation_requests_pending_seeker",
            "listing_id",
            "seeker_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
        # Owner review lists pending requests in creation order
        Index("ix_donation_requests_listing_status", "listing_id", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id"),
        nullable=False,
    )

    seeker_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    message: Mapped[str] = mapped_column(String(1000), nullable=False)

    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus),
        nullable=False,
        default=RequestStatus.PENDING,
    )

    neediness_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

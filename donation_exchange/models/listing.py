"""
Listing model — an offer of goods (donation) or an ask for goods (requirement).

Both kinds share one table and one lifecycle; the `kind` column tells them
apart. Donations carry a `condition` ("new", "good", "used", ...),
requirements carry an `urgency`.

Only APPROVED donation listings take requests. Once a request is accepted
the listing becomes DONATED, and COMPLETED once the seeker confirms receipt.
A DONATED or COMPLETED listing is referenced by exactly one Transaction.

Why both `is_approved` and `status`?
  `is_approved` is the moderator's flag as shown to browse pages;
  `status` is the lifecycle state. The Listing service keeps them in step
  (is_approved is True exactly while status is APPROVED, DONATED or COMPLETED).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from donation_exchange.database import Base
from donation_exchange.lifecycle import ListingKind, ListingStatus, Urgency


class Listing(Base):
    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    kind: Mapped[ListingKind] = mapped_column(
        Enum(ListingKind),
        nullable=False,
        default=ListingKind.DONATION,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Donations only
    condition: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Requirements only
    urgency: Mapped[Urgency | None] = mapped_column(Enum(Urgency), nullable=True)

    # How the owner wants to be reached for the handoff
    contact: Mapped[str] = mapped_column(String(100), nullable=False)

    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Lifecycle state — indexed because the accept path guards on it
    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus),
        nullable=False,
        default=ListingStatus.PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

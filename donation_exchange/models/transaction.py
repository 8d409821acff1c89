"""
Transaction model — the handoff record created when a request is accepted.

A Transaction links the listing, the accepted request, the donor (listing
owner) and the receiver (request seeker). It is created exactly once, in
the same database transaction that accepts the request, and is never
deleted or cancelled: the only way forward is receipt confirmation and then
feedback.

Key fields:
  - is_received: flips False -> True when the receiver confirms the handoff.
    Monotonic; confirming again is a no-op.
  - completed_at: when the receipt was confirmed (NULL until then)

Uniqueness:
  listing_id and request_id are both UNIQUE. Even if two accept calls
  raced past every application-level check, the second INSERT would fail
  and its whole unit of work would roll back.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from donation_exchange.database import Base
from donation_exchange.lifecycle import TransactionState, transaction_state


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id"),
        unique=True,
        nullable=False,
    )

    request_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("donation_requests.id"),
        unique=True,
        nullable=False,
    )

    # Listing owner
    donor_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # Request seeker
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    is_received: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
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

    @property
    def state(self) -> TransactionState:
        return transaction_state(self.is_received)

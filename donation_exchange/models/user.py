"""
User model — a donor, seeker, or moderator.

Identity (login, passwords, OTP verification) lives in an external identity
provider. This table mirrors the profile fields the exchange needs and owns
the donor-side reputation aggregate:

  - donation_count: +1 each time one of the user's donations is confirmed received
  - total_rating / rating_count: +rating / +1 for every feedback the user receives

The aggregate is only ever changed with relative UPDATEs
(SET donation_count = donation_count + 1) inside the same database
transaction as the state change that triggers it, so concurrent updates for
the same donor cannot lose increments.

User types:
  - ADMIN: Moderator — approves/rejects listings and provisions profiles
  - MEMBER: Donor and/or seeker — the default role
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, Integer, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from donation_exchange.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the exchange.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    ADMIN = "admin"     # Moderator
    MEMBER = "member"   # Donor / seeker


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint("donation_count >= 0", name="ck_users_donation_count"),
        CheckConstraint("rating_count >= 0", name="ck_users_rating_count"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Shared with the other party once a request is accepted
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.MEMBER,
        nullable=False,
    )

    # Deactivated users can't act but their history is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # --- Reputation aggregate (mutated only by the lifecycle services) ---
    donation_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_rating: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Audit timestamps
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

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def average_rating(self) -> float:
        if not self.rating_count:
            return 0.0
        return round(self.total_rating / self.rating_count, 1)

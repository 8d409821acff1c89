"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from donation_exchange.models directly
"""

from donation_exchange.models.user import User, UserType  # noqa: F401
from donation_exchange.models.listing import Listing  # noqa: F401
from donation_exchange.models.request import DonationRequest  # noqa: F401
from donation_exchange.models.transaction import Transaction  # noqa: F401
from donation_exchange.models.feedback import Feedback  # noqa: F401

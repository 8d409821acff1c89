"""
User service — profiles mirrored from the external identity provider.

Sign-up, passwords and OTP verification happen outside this service. A
moderator provisions the profile (email, name, phone, role) so that the
user's bearer token resolves to a row here. Reputation counters start at
zero and are only changed by the reputation service.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import unit_of_work
from donation_exchange.exceptions import DuplicateEmailError, NotFoundError
from donation_exchange.models.user import User, UserType

logger = logging.getLogger(__name__)


async def provision_user(
    db: AsyncSession,
    email: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    user_type: UserType = UserType.MEMBER,
    user_id: uuid.UUID | None = None,
) -> User:
    """
    Create the local profile for an identity-provider account.

    Args:
        user_id: The identity provider's subject id, when it already has one.

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    async with unit_of_work(db):
        existing = await db.scalar(select(User.id).where(User.email == email))
        if existing is not None:
            raise DuplicateEmailError(email)

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            user_type=user_type,
        )
        if user_id is not None:
            user.id = user_id
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise DuplicateEmailError(email) from exc

    logger.info("Provisioned %s profile %s", user_type.value, user.id)
    return user


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    """
    Raises:
        NotFoundError: If the user doesn't exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user

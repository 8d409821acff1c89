"""
FastAPI dependencies for authentication, authorization, and integrations.

Dependencies are reusable functions that FastAPI injects into route
handlers. They form a chain that enforces authentication and role-based
access control:

  get_current_user (JWT -> User)
      ├── get_current_member (User -> User)   [MEMBER role: donors and seekers]
      └── require_admin (User -> User)        [ADMIN role: moderators]

Moderators approve listings and provision profiles through /admin/*
endpoints; they are blocked from the member endpoints so a moderator can
never accept, receive or rate a donation.

The notifier and neediness scorer are dependencies too, so tests (or a
different deployment) can swap them through app.dependency_overrides
without touching the services.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from donation_exchange.database import get_db
from donation_exchange.models.user import User, UserType
from donation_exchange.notifications import Notifier, default_notifier
from donation_exchange.scoring import NeedinessScorer, default_scorer
from donation_exchange.security import decode_access_token


# Tokens come from the external identity provider; tokenUrl is only used
# by Swagger UI's "Authorize" button.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        user_id = uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_current_member(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require a MEMBER (donor/seeker) for the lifecycle endpoints.

    Raises:
        HTTPException 403: If the user is a moderator.
    """
    if user.user_type == UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator accounts cannot act on member endpoints. "
                   "Use /admin/* endpoints.",
        )
    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to have the ADMIN (moderator) role.

    Raises:
        HTTPException 403: If the user is not a moderator.
    """
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def get_notifier() -> Notifier:
    return default_notifier()


def get_scorer() -> NeedinessScorer:
    return default_scorer()

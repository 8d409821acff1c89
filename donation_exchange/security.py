"""
Bearer token utilities.

Users sign in through an external identity provider, which issues a signed
JWT whose "sub" claim is the user's id. The exchange only needs to verify
those tokens; create_access_token() exists for the identity provider's
side of the contract (and for local tooling such as demo/seed.py).

  - Tokens are signed with SECRET_KEY using HS256 (HMAC-SHA256)
  - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30 min)
  - The server is stateless: no session storage needed
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from donation_exchange.config import settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Mint a bearer token the way the identity provider does.

    The exchange never issues tokens to end users itself. This is the
    provider's half of the shared-secret contract, used by the test suite
    and demo/seed.py to stand in for it.

    Args:
        data: Claims to sign. "sub" must be the user's id as a string;
            get_current_user() looks the profile up by it.
        expires_delta: Lifetime of the token. Defaults to
            ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        A compact JWS string signed with SECRET_KEY using ALGORITHM.
    """
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify a provider-issued token and return its claims.

    Only the signature (SECRET_KEY, ALGORITHM) and "exp" are checked here.
    Whether "sub" names a provisioned user is up to get_current_user().

    Raises:
        JWTError: If the signature doesn't match, the token has expired,
            or it isn't a JWT at all.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

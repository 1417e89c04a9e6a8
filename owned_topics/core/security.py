"""Bearer-token identity for topic owners.

Accounts and passwords are handled by the identity service that issues the
tokens. Here a token is only checked for signature and expiry, and its
``sub`` claim becomes the owner id every topic operation is scoped to.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt  # python-jose

from owned_topics.core.config import get_settings


class TokenValidationError(Exception):
    """Raised when a bearer token is missing, invalid or names no owner."""


def issue_owner_token(owner_id: str, *, expires_delta: timedelta | None = None) -> str:
    """Return a signed token whose subject is *owner_id*.

    Used by tooling and tests; production tokens come from the identity service.
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {"sub": owner_id, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def owner_from_token(token: str) -> str:
    """Verify *token* and return the owner id carried in its ``sub`` claim.

    Raises
    ------
    TokenValidationError
        If the token is malformed, expired, signed with another key, or has
        no usable subject.
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise TokenValidationError("Invalid or expired token") from exc
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise TokenValidationError("Token has no subject")
    return sub

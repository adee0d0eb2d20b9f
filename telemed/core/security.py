"""Bearer token handling.

Tokens are issued by the identity service; this module only needs to verify
them and recover the user id carried in ``sub``. ``create_access_token`` is
kept for seeding and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from telemed.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    subject: UUID | str,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """
    Issue a signed access token for ``subject``.

    Args:
        subject: User id placed in ``sub``
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        **claims: Extra claims copied into the payload

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        **claims,
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified payload of an access token, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return payload


def token_subject(token: str) -> UUID | None:
    """User id carried by a valid access token."""
    payload = decode_access_token(token)
    if payload is None:
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str):
        return None

    try:
        return UUID(subject)
    except ValueError:
        return None

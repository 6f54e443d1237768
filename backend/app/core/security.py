"""Security utilities.

Single source of truth for JWT creation/verification. Tokens carry the
actor identity (`sub`) and the actor type; the platform does not manage
passwords itself.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.config import settings


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token from a payload dict.

    Expected to include `sub` and `actor_type` in `data`.
    """

    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_actor_token(
    actor_id: int, actor_type: str, expires_minutes: Optional[int] = None
) -> str:
    minutes = expires_minutes or settings.access_token_expire_minutes
    return create_access_token(
        {"sub": str(actor_id), "actor_type": str(actor_type).upper()},
        expires_delta=timedelta(minutes=minutes),
    )


def decode_access_token(token: str) -> Optional[dict]:
    """Decode JWT access token; returns payload or None if invalid."""

    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

"""Bearer token verification.

Tokens are issued by the external identity service; the core only checks them.
HS* algorithms verify with ``jwt_secret``; RS*/ES* read the public key from
``jwt_public_key_path``. ``mint_access_token`` exists for tests and tooling.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

import jwt

from predictearn.config import get_settings

ROLES = ("admin", "staff", "user")
ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    role: str


@lru_cache(maxsize=1)
def _verify_key() -> str:
    settings = get_settings()
    if settings.jwt_algorithm.startswith("HS"):
        return settings.jwt_secret
    return Path(settings.jwt_public_key_path).read_text()


def reset_keys() -> None:
    _verify_key.cache_clear()


def mint_access_token(user_id: int, role: str = "user") -> str:
    """HS256 token with the claims the identity service issues."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> AccessClaims:
    """Verify signature, expiry, issuer and claims.

    Raises:
        jwt.InvalidTokenError: with a message safe to return to the caller.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            _verify_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired") from None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not an access token")
    role = payload.get("role", "user")
    if role not in ROLES:
        raise jwt.InvalidTokenError("Unknown role")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise jwt.InvalidTokenError("Invalid subject") from None
    return AccessClaims(user_id=user_id, role=role)

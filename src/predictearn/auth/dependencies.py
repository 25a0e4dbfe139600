"""FastAPI authentication dependencies.

The core never checks credentials itself: it receives a resolved identity
from the bearer token and trusts the issuer for the role claim.
"""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from predictearn.auth.jwt import decode_access_token

_bearer = HTTPBearer()
_optional_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Resolved caller identity."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_staff(self) -> bool:
        return self.role in ("admin", "staff")


def _identity_from_token(token: str) -> Identity:
    try:
        claims = decode_access_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e) or "Invalid token") from e
    return Identity(user_id=claims.user_id, role=claims.role)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> Identity:
    """Extract and verify the bearer token. Raises 401 on failure."""
    return _identity_from_token(credentials.credentials)


async def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(_optional_bearer),
) -> Identity | None:
    """Like ``get_current_identity`` but anonymous callers get ``None``."""
    if credentials is None:
        return None
    return _identity_from_token(credentials.credentials)


async def require_staff(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_staff:
        raise HTTPException(status_code=403, detail="Staff access required")
    return identity


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity

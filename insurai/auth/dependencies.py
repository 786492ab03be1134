"""
dependencies.py — FastAPI auth dependencies.

    async def route(user: AuthContext = Depends(get_current_user)): ...
    async def admin_route(admin: AuthContext = Depends(require_admin)): ...

Failure mapping:
  missing / non-Bearer Authorization header  → 401 AuthError
  bad signature, expired, malformed token    → 403 ForbiddenError
  token for a user that no longer exists     → 404 NotFoundError
  non-admin on an admin route                → 403 ForbiddenError
"""
import logging
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from insurai.auth.security import decode_access_token
from insurai.database import get_db
from insurai.errors import AuthError, ForbiddenError, NotFoundError
from insurai.store import get_user_by_id

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext(BaseModel):
    """The authenticated caller, re-read from the users table on every request."""
    id: int
    email: str
    full_name: str
    role: str
    state_id: Optional[int] = None
    state_name: Optional[str] = None
    state_code: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Access token required")

    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as exc:
        logger.warning("Rejected access token: %s", exc)
        raise ForbiddenError("Invalid or expired token") from exc

    user = await get_user_by_id(db, claims["user_id"])
    if user is None:
        logger.warning("Token for missing user_id=%s", claims["user_id"])
        raise NotFoundError("User not found")

    return AuthContext(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        state_id=user.state_id,
        state_name=user.state.state_name if user.state else None,
        state_code=user.state.state_code if user.state else None,
    )


async def require_admin(user: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not user.is_admin:
        logger.warning("Non-admin user_id=%s denied admin route", user.id)
        raise ForbiddenError("Admin access required")
    return user

"""Bearer-token identity for API callers and the shared token for the worker bridge."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from helpdesk.core.config import get_settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(user_id: int, role: str = "user", expires_in: timedelta | None = None) -> str:
    """Issue a signed token; sub carries the user id as a string."""
    settings = get_settings()
    claims: dict = {"sub": str(user_id), "role": role}
    if expires_in is not None:
        claims["exp"] = datetime.now(timezone.utc) + expires_in
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    access_token: str | None = Query(None, include_in_schema=False),
) -> CurrentUser:
    """Resolve the caller from the Authorization header.

    EventSource clients cannot set headers, so ?access_token= is accepted too.
    """
    token = credentials.credentials if credentials else access_token
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return CurrentUser(id=int(claims["sub"]), role=claims.get("role", "user"))
    except (JWTError, KeyError, ValueError) as e:
        logger.warning(f"JWT verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def verify_internal_token(x_internal_token: str | None = Header(None)) -> None:
    """Guard /internal routes; only the worker knows the shared token."""
    expected = get_settings().internal_api_token
    if not x_internal_token or not hmac.compare_digest(x_internal_token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid internal token")

"""Per-request identity for the HTTP surface.

Login hands out a signed access token (an ``access_token`` cookie, also
returned in the body for ``Authorization: Bearer`` clients). Guarded routes
resolve the caller from that token on every request, never from the shared
session slot.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status

from models.user import User
from storage.errors import NotFound

ALGORITHM = "HS256"
ACCESS_TOKEN_COOKIE = "access_token"


def create_access_token(user_id: str, secret_key: str, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    return jwt.encode({"sub": user_id, "exp": expire}, secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str) -> Optional[str]:
    """Return the user id a token was issued for, or ``None`` if it is bad or expired."""

    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


def request_token(request: Request) -> Optional[str]:
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


async def get_current_user(request: Request) -> Optional[User]:
    """The user behind this request's token; ``None`` for anonymous callers."""

    token = request_token(request)
    if not token:
        return None
    chroma = request.app.state.chroma
    user_id = decode_access_token(token, chroma.config.secret_key)
    if user_id is None:
        return None
    try:
        return await chroma.repositories.users.get(user_id)
    except NotFound:
        # Account deleted after the token was issued.
        return None


async def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


async def require_admin(user: User = Depends(require_user)) -> User:
    """Dependency that only lets an admin's own token through."""

    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "require_admin",
    "require_user",
]

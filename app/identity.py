"""
Identity boundary.

The identity provider is external: it signs bearer tokens whose ``sub``
claim is the user id and whose ``name`` / ``picture`` claims carry the
profile.  This module only verifies those tokens and hands the result to
the handlers; it never decides what a user may do.
"""
import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from app.config import settings
from app.errors import Unauthorized

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"

# auto_error=False: anonymous requests reach the handlers, which decide.
bearer_scheme = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    user_id: str
    name: str | None = None
    image: str | None = None


def create_access_token(
    user_id: str,
    name: str | None = None,
    image: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Mint a token shaped like the ones the identity provider issues."""
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": user_id,
        "name": name,
        "picture": image,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Identity | None:
    """Verify *token*; return None when it is expired, tampered or lacks a subject."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired identity token")
        return None
    except jwt.PyJWTError as exc:
        logger.info("Rejected invalid identity token: %s", exc)
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    return Identity(user_id=user_id, name=payload.get("name"), image=payload.get("picture"))


async def get_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity | None:
    """
    FastAPI dependency returning the caller's identity, or None.

    The ``Authorization: Bearer`` header wins; browsers rendering the HTML
    pages send the same token in the ``session`` cookie instead.
    """
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return decode_token(token)


def require_user_id(identity: Identity | None) -> str:
    """Return the authenticated user id or raise ``Unauthorized``."""
    if identity is None or not identity.user_id:
        raise Unauthorized()
    return identity.user_id

"""
Hookups — Request gates shared by the API routers.

``authenticate`` verifies the bearer token and yields the caller's identity;
``restrict_to`` builds a role gate on top of it.  Both reject by raising
``HttpException`` so the shared error handler renders the response.
"""

from __future__ import annotations

import uuid
from typing import Callable

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings
from app.schemas.auth import CurrentUser
from app.services.hookup_service import HookupService
from app.utils.exceptions import HttpException

logger = structlog.get_logger("hookups.api.deps")

bearer_scheme = HTTPBearer(auto_error=False)

NOT_LOGGED_IN = "You are not logged in! Please log in to get access."
TOKEN_EXPIRED = "Your token has expired! Please log in again."
TOKEN_INVALID = "Invalid token. Please log in again."
FORBIDDEN = "You do not have permission to perform this action"


# ──────────────────────────────────────────────────────────────────────────────
# Authentication
# ──────────────────────────────────────────────────────────────────────────────

async def authenticate(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Decode the bearer JWT and return the user it was issued to.

    The token's ``sub`` claim must be a user UUID; ``role`` defaults to
    ``"user"`` when absent.
    """
    if credentials is None or not credentials.credentials:
        raise HttpException(NOT_LOGGED_IN, 401)

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise HttpException(TOKEN_EXPIRED, 401) from None
    except jwt.InvalidTokenError as exc:
        logger.info("token_rejected", reason=str(exc))
        raise HttpException(TOKEN_INVALID, 401) from None

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        logger.info("token_rejected", reason="subject is not a user id")
        raise HttpException(TOKEN_INVALID, 401) from None

    return CurrentUser(id=user_id, role=payload.get("role") or "user")


# ──────────────────────────────────────────────────────────────────────────────
# Role restriction
# ──────────────────────────────────────────────────────────────────────────────

def restrict_to(*roles: str) -> Callable:
    """Build a gate that only lets users with one of ``roles`` through."""

    async def _restrict(user: CurrentUser = Depends(authenticate)) -> CurrentUser:
        if user.role not in roles:
            logger.warning("role_forbidden", user_id=str(user.id), role=user.role)
            raise HttpException(FORBIDDEN, 403)
        return user

    return _restrict


# ──────────────────────────────────────────────────────────────────────────────
# Service singleton
# ──────────────────────────────────────────────────────────────────────────────

_hookup_service: HookupService | None = None


def get_hookup_service() -> HookupService:
    global _hookup_service
    if _hookup_service is None:
        _hookup_service = HookupService()
    return _hookup_service

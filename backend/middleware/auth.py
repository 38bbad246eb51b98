"""
Session authentication helpers.

The identity provider issues short-lived HS256 JWT access tokens whose
`sub` claim is the user id. A request may carry the token either as:
  - Authorization: Bearer <jwt>
  - the session cookie (settings.session_cookie_name), for browser checkout

Two dependencies are exposed:
  - get_current_user_id: best-effort, returns None for anonymous or invalid
    sessions. Used where another check must run before identity (payment
    signature verification).
  - require_user_id: raises UnauthenticatedError when there is no session.
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from config import settings
from domain.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def decode_access_token(token: str) -> dict:
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Session expired. Please log in again.")
    except jwt.InvalidTokenError:
        raise UnauthenticatedError("Invalid session token.")


def issue_access_token(*, user_id: str, role: str = "student") -> str:
    """Mint a session token with the identity provider's claim layout."""
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=settings.jwt_access_ttl_minutes)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": user_id,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def _extract_token(request: Request) -> Optional[str]:
    token = _parse_bearer_token(request.headers.get("Authorization"))
    if token:
        return token
    return request.cookies.get(settings.session_cookie_name) or None


async def get_current_user_id(request: Request) -> Optional[str]:
    """
    Best-effort authentication: returns the session's user id or None.

    Invalid and expired tokens are treated as anonymous here; callers that
    need a principal raise UnauthenticatedError themselves.
    """
    token = _extract_token(request)
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except UnauthenticatedError as e:
        logger.info(f"Ignoring unusable session token: {e.message}")
        return None
    return payload.get("sub") or None


async def require_user_id(request: Request) -> str:
    """Dependency for endpoints that need an authenticated user."""
    token = _extract_token(request)
    if not token:
        raise UnauthenticatedError()
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError("Invalid session token.")
    return user_id

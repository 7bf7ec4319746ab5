"""
Session tokens carried in the ``app_session_id`` cookie.

The token is an HS256 JWT signed with ``settings.SECRET_KEY`` whose
claims describe the signed-in identity (``openId``, ``name``,
``loginMethod``).  Exchanging provider credentials for a token happens
outside this service; here tokens are only minted and verified.
"""
import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Request

from blogrpc.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_session_token(
    open_id: str,
    name: str | None = None,
    login_method: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_in or timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS)
    )
    claims = {
        "openId": open_id,
        "name": name,
        "loginMethod": login_method,
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_session_token(token: str) -> dict | None:
    """Return the token claims, or None if the token is unusable."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        return None
    except jwt.InvalidTokenError as exc:
        logger.warning("Session token rejected: %s", exc)
        return None

    if not isinstance(claims.get("openId"), str) or not claims["openId"]:
        logger.warning("Session token has no openId claim")
        return None
    return claims


def _is_secure_request(request: Request) -> bool:
    if request.url.scheme == "https":
        return True
    forwarded = request.headers.get("x-forwarded-proto", "")
    return "https" in [proto.strip().lower() for proto in forwarded.split(",")]


def session_cookie_options(request: Request) -> dict:
    """Cookie attributes shared by setting and clearing the session cookie."""
    secure = _is_secure_request(request)
    return {
        "path": "/",
        "httponly": True,
        "secure": secure,
        # Browsers drop SameSite=None cookies that are not Secure.
        "samesite": "none" if secure else "lax",
    }

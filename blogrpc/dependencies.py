"""
Request-scoped FastAPI dependencies: who is calling, and may they
change data.
"""
import logging
from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogrpc.config import settings
from blogrpc.database import get_db
from blogrpc.models import User
from blogrpc.policy import can_mutate
from blogrpc.schemas import IdentityAssertion
from blogrpc.services import user_service
from blogrpc.sessions import verify_session_token

logger = logging.getLogger(__name__)


async def get_current_user(
    request: Request,
    db: AsyncSession | None = Depends(get_db),
) -> User | None:
    """
    Resolve the caller from the session cookie.

    Returns None for anonymous callers and for unusable tokens.  A valid
    token refreshes the stored identity: unknown users are created from
    the token claims, known users get ``last_signed_in`` advanced.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None

    claims = verify_session_token(token)
    if claims is None:
        return None

    open_id = claims["openId"]
    signed_in_at = datetime.now(timezone.utc)
    user = await user_service.get_user_by_open_id(db, open_id)
    if user is None:
        identity = IdentityAssertion(
            open_id=open_id,
            name=claims.get("name"),
            login_method=claims.get("loginMethod"),
            last_signed_in=signed_in_at,
        )
    else:
        identity = IdentityAssertion(open_id=open_id, last_signed_in=signed_in_at)

    await user_service.upsert_user(db, identity)
    return await user_service.get_user_by_open_id(db, open_id)


async def require_admin(user: User | None = Depends(get_current_user)) -> User:
    """Reject every caller that is not a signed-in admin."""
    if not can_mutate(user):
        logger.info(
            "Admin procedure refused for %s",
            user.open_id if user is not None else "anonymous caller",
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user

"""
User service: identity upsert and lookup for the User table.

Users are never created through a public procedure; they are merged in
from the session identity on every authenticated request.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blogrpc.config import settings
from blogrpc.errors import InvalidIdentityError
from blogrpc.models import User, UserRole
from blogrpc.schemas import IdentityAssertion

logger = logging.getLogger(__name__)

# Provider-supplied text fields; supplied-but-empty values are stored as NULL.
_TEXT_FIELDS = ("name", "email", "login_method")


async def get_user_by_open_id(db: AsyncSession | None, open_id: str) -> User | None:
    if db is None:
        logger.warning("Cannot get user: database not available")
        return None
    result = await db.execute(select(User).where(User.open_id == open_id).limit(1))
    return result.scalar_one_or_none()


async def upsert_user(db: AsyncSession | None, identity: IdentityAssertion) -> None:
    """
    Insert or refresh the user identified by ``identity.open_id``.

    Only fields present in the assertion are written.  Without an
    explicit role, the configured owner identity is always promoted to
    admin.  Every call advances something: a new row gets
    ``last_signed_in`` defaulted to now, and an existing row with no
    other change gets ``last_signed_in`` bumped.

    Best effort when no database is configured (logged, no error).
    """
    if not identity.open_id:
        raise InvalidIdentityError("User openId is required for upsert")

    if db is None:
        logger.warning("Cannot upsert user: database not available")
        return

    provided = identity.model_fields_set
    changes: dict = {}
    for field in _TEXT_FIELDS:
        if field in provided:
            changes[field] = getattr(identity, field) or None

    if identity.last_signed_in is not None:
        changes["last_signed_in"] = identity.last_signed_in

    if identity.role is not None:
        changes["role"] = identity.role
    elif settings.OWNER_OPEN_ID and identity.open_id == settings.OWNER_OPEN_ID:
        changes["role"] = UserRole.ADMIN

    now = datetime.now(timezone.utc)
    try:
        user = await get_user_by_open_id(db, identity.open_id)
        if user is None:
            user = User(open_id=identity.open_id, **changes)
            if user.last_signed_in is None:
                user.last_signed_in = now
            db.add(user)
        else:
            if not changes:
                changes["last_signed_in"] = now
            for field, value in changes.items():
                setattr(user, field, value)
        await db.flush()
        # Load server-generated columns so the instance is safe to serialise.
        await db.refresh(user)
    except SQLAlchemyError:
        logger.exception("Failed to upsert user %r", identity.open_id)
        raise

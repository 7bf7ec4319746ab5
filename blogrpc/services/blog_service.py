"""
Blog service: every query and mutation against the blog_posts table.

Design notes
------------
- Visibility is decided by the caller: each read takes an
  ``include_unpublished`` flag and the router only passes True for
  admins.  Without it, every read is restricted to ``published = 1``.
- Reads degrade to empty results when no database is configured, and
  so does the view counter.  Create, update and delete raise
  ``DatabaseUnavailableError`` instead, because silently dropping a write
  the caller believes succeeded is worse than failing.
- Category and series lists are derived from published posts only and
  are served cache-aside from Redis; a write invalidates them only after
  its transaction commits.
- Write functions flush but do not commit.  Mutation procedures call
  ``commit_post_write`` before answering, so an acknowledged write is
  already durable; ``get_db`` still owns rollback on error.
"""
import logging
from typing import Any

from sqlalchemy import Select, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blogrpc.cache import cache
from blogrpc.config import settings
from blogrpc.errors import DatabaseUnavailableError
from blogrpc.models import BlogPost

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------


def _require_db(db: AsyncSession | None, action: str) -> AsyncSession:
    if db is None:
        logger.warning("Cannot %s: database not available", action)
        raise DatabaseUnavailableError()
    return db


def _visible(stmt: Select, include_unpublished: bool) -> Select:
    if include_unpublished:
        return stmt
    return stmt.where(BlogPost.published == 1)


def _newest_first(stmt: Select) -> Select:
    # id breaks ties between posts created within the same clock tick.
    return stmt.order_by(BlogPost.created_at.desc(), BlogPost.id.desc())


async def _all(db: AsyncSession, stmt: Select) -> list[BlogPost]:
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_all_blog_posts(
    db: AsyncSession | None, include_unpublished: bool = False
) -> list[BlogPost]:
    if db is None:
        return []
    stmt = _newest_first(_visible(select(BlogPost), include_unpublished))
    return await _all(db, stmt)


async def get_blog_post_by_slug(
    db: AsyncSession | None, slug: str, include_unpublished: bool = False
) -> BlogPost | None:
    if db is None:
        return None
    stmt = _visible(select(BlogPost).where(BlogPost.slug == slug), include_unpublished)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()


async def get_blog_post_by_id(db: AsyncSession | None, post_id: int) -> BlogPost | None:
    """Look up a post regardless of publish state (admin/internal use only)."""
    if db is None:
        return None
    result = await db.execute(select(BlogPost).where(BlogPost.id == post_id).limit(1))
    return result.scalar_one_or_none()


async def search_blog_posts(
    db: AsyncSession | None, query: str, include_unpublished: bool = False
) -> list[BlogPost]:
    """
    Case-insensitive substring search over title, content and tags.

    ``%`` and ``_`` in *query* are matched literally.  An empty query
    matches nothing.
    """
    if db is None or not query:
        return []
    matches = or_(
        BlogPost.title.icontains(query, autoescape=True),
        BlogPost.content.icontains(query, autoescape=True),
        BlogPost.tags.icontains(query, autoescape=True),
    )
    stmt = _newest_first(_visible(select(BlogPost).where(matches), include_unpublished))
    return await _all(db, stmt)


async def get_blog_posts_by_category(
    db: AsyncSession | None, category: str, include_unpublished: bool = False
) -> list[BlogPost]:
    if db is None:
        return []
    stmt = select(BlogPost).where(BlogPost.category == category)
    return await _all(db, _newest_first(_visible(stmt, include_unpublished)))


async def get_blog_posts_by_series(
    db: AsyncSession | None, series_name: str, include_unpublished: bool = False
) -> list[BlogPost]:
    """Posts of one series in authored order (``series_order`` ascending)."""
    if db is None:
        return []
    stmt = (
        _visible(select(BlogPost).where(BlogPost.series_name == series_name), include_unpublished)
        .order_by(BlogPost.series_order.asc().nulls_last(), BlogPost.id.asc())
    )
    return await _all(db, stmt)


async def _distinct_published(db: AsyncSession | None, column, kind: str) -> list[str]:
    if db is None:
        return []

    cache_key = cache.taxonomy_key(kind)
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    stmt = (
        select(column)
        .where(BlogPost.published == 1, column.is_not(None))
        .group_by(column)
        .order_by(column)
    )
    result = await db.execute(stmt)
    values = [value for value in result.scalars().all() if value]
    await cache.set(cache_key, values, ttl=settings.CACHE_TTL_TAXONOMY)
    return values


async def get_all_categories(db: AsyncSession | None) -> list[str]:
    return await _distinct_published(db, BlogPost.category, "categories")


async def get_all_series(db: AsyncSession | None) -> list[str]:
    return await _distinct_published(db, BlogPost.series_name, "series")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def create_blog_post(db: AsyncSession | None, values: dict[str, Any]) -> int:
    """Insert a post and return its generated id."""
    db = _require_db(db, "create blog post")
    post = BlogPost(**values)
    db.add(post)
    await db.flush()
    return post.id


async def update_blog_post(
    db: AsyncSession | None, post_id: int, changes: dict[str, Any]
) -> None:
    """Write only the columns in *changes*; an unknown id is not an error."""
    db = _require_db(db, "update blog post")
    if not changes:
        return
    stmt = (
        update(BlogPost)
        .where(BlogPost.id == post_id)
        .values(**changes)
        .execution_options(synchronize_session=False)
    )


async def delete_blog_post(db: AsyncSession | None, post_id: int) -> None:
    """Hard delete by id; deleting a missing id is a no-op."""
    db = _require_db(db, "delete blog post")
    stmt = (
        delete(BlogPost)
        .where(BlogPost.id == post_id)
        .execution_options(synchronize_session=False)
    )


async def increment_blog_post_views(db: AsyncSession | None, post_id: int) -> None:
    """Atomically bump ``view_count`` in SQL; skipped when no database."""
    if db is None:
        return
    stmt = (
        update(BlogPost)
        .where(BlogPost.id == post_id)
        .values(view_count=BlogPost.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)


async def commit_post_write(db: AsyncSession) -> None:
    """Commit pending post writes, then drop the cached taxonomy lists."""
    await db.commit()
    await cache.invalidate_taxonomy()

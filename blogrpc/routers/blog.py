from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blogrpc.database import get_db
from blogrpc.dependencies import get_current_user, require_admin
from blogrpc.models import User
from blogrpc.policy import can_view_unpublished
from blogrpc.schemas import (
    BlogPostCreate,
    BlogPostId,
    BlogPostResponse,
    BlogPostUpdate,
    CreatedResponse,
    SuccessResponse,
)
from blogrpc.services import blog_service

router = APIRouter(prefix="/api/rpc", tags=["blog"])

NOT_FOUND = "Blog post not found"

# ---------------------------------------------------------------------------
# Public procedures: published posts for everyone, drafts for admins
# ---------------------------------------------------------------------------

@router.get("/blog.list", response_model=list[BlogPostResponse])
async def list_posts(
    include_unpublished: bool = Query(False, alias="includeUnpublished"),
    user: User | None = Depends(get_current_user),
    db: AsyncSession | None = Depends(get_db),
):
    # Drafts are opt-in even for admins.
    include = include_unpublished and can_view_unpublished(user)
    return await blog_service.get_all_blog_posts(db, include)

@router.get("/blog.getBySlug", response_model=BlogPostResponse)
async def get_post_by_slug(
    slug: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession | None = Depends(get_db),
):
    post = await blog_service.get_blog_post_by_slug(db, slug, can_view_unpublished(user))
    if post is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    # Draft previews are not views.
    if post.published == 1:
        await blog_service.increment_blog_post_views(db, post.id)
    return post

@router.get("/blog.search", response_model=list[BlogPostResponse])
async def search_posts(
    query: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession | None = Depends(get_db),
):
    return await blog_service.search_blog_posts(db, query, can_view_unpublished(user))

@router.get("/blog.getByCategory", response_model=list[BlogPostResponse])
async def get_posts_by_category(
    category: str,
    user: User | None = Depends(get_current_user),
    db: AsyncSession | None = Depends(get_db),
):
    return await blog_service.get_blog_posts_by_category(db, category, can_view_unpublished(user))

@router.get("/blog.getBySeries", response_model=list[BlogPostResponse])
async def get_posts_by_series(
    series_name: str = Query(..., alias="seriesName"),
    user: User | None = Depends(get_current_user),
    db: AsyncSession | None = Depends(get_db),
):
    return await blog_service.get_blog_posts_by_series(db, series_name, can_view_unpublished(user))

@router.get("/blog.getCategories", response_model=list[str])
async def get_categories(db: AsyncSession | None = Depends(get_db)):
    return await blog_service.get_all_categories(db)

@router.get("/blog.getSeries", response_model=list[str])
async def get_series(db: AsyncSession | None = Depends(get_db)):
    return await blog_service.get_all_series(db)

# ---------------------------------------------------------------------------
# Admin procedures
# ---------------------------------------------------------------------------

@router.post("/blog.create", status_code=201, response_model=CreatedResponse)
async def create_post(
    data: BlogPostCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession | None = Depends(get_db),
):
    values = data.model_dump()
    values["author_id"] = admin.id
    values["published_at"] = datetime.now(timezone.utc) if data.published == 1 else None
    try:
        post_id = await blog_service.create_blog_post(db, values)
        await blog_service.commit_post_write(db)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="A blog post with this slug already exists",
        )
    return CreatedResponse(id=post_id)

@router.post("/blog.update", response_model=SuccessResponse)
async def update_post(
    data: BlogPostUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession | None = Depends(get_db),
):
    changes = data.changes()
    # First publish stamps published_at; it is never moved afterwards.
    if changes.get("published") == 1:
        post = await blog_service.get_blog_post_by_id(db, data.id)
        if post is not None and post.published_at is None:
            changes["published_at"] = datetime.now(timezone.utc)
    try:
        await blog_service.update_blog_post(db, data.id, changes)
        await blog_service.commit_post_write(db)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="A blog post with this slug already exists",
        )
    return SuccessResponse()

@router.post("/blog.delete", response_model=SuccessResponse)
async def delete_post(
    data: BlogPostId,
    admin: User = Depends(require_admin),
    db: AsyncSession | None = Depends(get_db),
):
    await blog_service.delete_blog_post(db, data.id)
    await blog_service.commit_post_write(db)
    return SuccessResponse()

@router.get("/blog.getById", response_model=BlogPostResponse)
async def get_post_by_id(
    post_id: int = Query(..., alias="id"),
    admin: User = Depends(require_admin),
    db: AsyncSession | None = Depends(get_db),
):
    post = await blog_service.get_blog_post_by_id(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return post

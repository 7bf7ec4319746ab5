from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from blogrpc.models import UserRole


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- User ---

class IdentityAssertion(CamelModel):
    """
    Identity claims handed over by the external auth provider.

    Only fields that were actually supplied (``model_fields_set``) are
    merged into the users table; a field passed as ``None`` is written
    as NULL, an omitted field is left untouched.
    """

    open_id: str
    name: str | None = None
    email: str | None = None
    login_method: str | None = None
    role: UserRole | None = None
    last_signed_in: datetime | None = None


class UserResponse(CamelModel):
    id: int
    open_id: str
    name: str | None
    email: str | None
    login_method: str | None
    role: UserRole
    created_at: datetime
    updated_at: datetime | None
    last_signed_in: datetime
    model_config = ConfigDict(from_attributes=True)


# --- BlogPost ---

class BlogPostBase(CamelModel):
    excerpt: str | None = None
    cover_image: str | None = None
    tags: str | None = None
    category: str | None = None
    series_name: str | None = None
    series_order: int | None = None


class BlogPostCreate(BlogPostBase):
    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    published: int = Field(0, ge=0, le=1)


# Columns a patch may change but never set to NULL.
_NOT_NULLABLE_COLUMNS = ("title", "slug", "content", "published")


class BlogPostUpdate(BlogPostBase):
    """
    Partial update.  Omitted fields stay as stored; nullable fields sent
    as ``null`` are cleared.
    """

    id: int
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    published: int | None = Field(None, ge=0, le=1)

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> "BlogPostUpdate":
        for name in _NOT_NULLABLE_COLUMNS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Column values to write, keyed by column name."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


class BlogPostId(CamelModel):
    id: int


class BlogPostResponse(CamelModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None
    cover_image: str | None
    tags: str | None
    category: str | None
    series_name: str | None
    series_order: int | None
    published: int
    published_at: datetime | None
    author_id: int | None
    view_count: int
    created_at: datetime
    updated_at: datetime | None
    model_config = ConfigDict(from_attributes=True)


# --- Acknowledgements ---

class CreatedResponse(BaseModel):
    id: int


class SuccessResponse(BaseModel):
    success: bool = True

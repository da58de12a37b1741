from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from quillpress.domain.errors import ValidationError

# --- Enums / Literals ---
PostStatus = Literal["draft", "pending", "published", "archived"]
LifecycleAction = Literal["publish", "unpublish", "submit", "delete", "restore"]
CommentStatus = Literal["pending", "approved", "rejected", "spam"]

POST_STATUSES: tuple[PostStatus, ...] = ("draft", "pending", "published", "archived")


def utcnow() -> datetime:
    return datetime.now(UTC)


# --- Identity ---

class Identity(BaseModel):
    """Caller identity, already resolved by the authentication collaborator."""

    id: UUID
    role: str


# --- Posts ---

class Post(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    author_id: UUID
    title: str
    slug: str
    body: str
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    feature_image_url: str | None = None

    status: PostStatus = "draft"
    published_at: datetime | None = None
    is_deleted: bool = False

    read_time_minutes: int = 0
    view_count: int = 0
    comment_count: int = 0
    meta: dict[str, Any] = Field(default_factory=dict)

    version: int = 1
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Revision(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    post_id: UUID
    editor_id: UUID | None = None
    title: str
    content: str
    note: str | None = None
    seq: int = 0  # assigned by storage, orders revisions of one post
    created_at: datetime = Field(default_factory=utcnow)


# --- Collaborator records ---

class Comment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    post_id: UUID
    author_id: UUID | None = None
    body: str
    status: CommentStatus = "pending"
    created_at: datetime = Field(default_factory=utcnow)


class MediaDescriptor(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    post_id: UUID | None = None
    uploaded_by: UUID
    filename: str
    url: str
    mime_type: str
    size: int
    created_at: datetime = Field(default_factory=utcnow)


# --- Helpers ---

def parse_id(value: UUID | str, field: str = "id") -> UUID:
    """Parse an opaque id, raising ValidationError when malformed."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {field.replace('_', ' ')}", field=field) from None


def try_parse_id(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None

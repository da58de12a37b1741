from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StrictBool

from quillpress.components.content import PostPage


# --- Posts ---
class PostCreateRequest(BaseModel):
    title: str
    body: str
    excerpt: str | None = None
    tags: list[str] = []
    categories: list[str] = []
    feature_image_url: str | None = None
    meta: dict[str, Any] | None = None
    status: str | None = None


class PostUpdateRequest(BaseModel):
    title: str | None = None
    body: str | None = None
    excerpt: str | None = None
    tags: list[str] | None = None
    categories: list[str] | None = None
    feature_image_url: str | None = None
    meta: dict[str, Any] | None = None
    status: str | None = None
    expected_version: int | None = None


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    author_id: UUID
    title: str
    slug: str
    body: str
    excerpt: str
    tags: list[str]
    categories: list[str]
    feature_image_url: str | None = None
    status: str
    published_at: datetime | None = None
    is_deleted: bool
    read_time_minutes: int
    view_count: int
    comment_count: int
    meta: dict[str, Any]
    version: int
    created_at: datetime
    updated_at: datetime


class PostPageResponse(BaseModel):
    page: int
    limit: int
    total: int
    items: list[PostResponse]

    @classmethod
    def from_page(cls, page: PostPage) -> "PostPageResponse":
        return cls(
            page=page.page,
            limit=page.limit,
            total=page.total,
            items=[PostResponse.model_validate(p) for p in page.items],
        )


# --- Revisions ---
class RevisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID
    editor_id: UUID | None = None
    title: str
    content: str
    note: str | None = None
    seq: int
    created_at: datetime


# --- Media ---
class MediaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: UUID | None = None
    uploaded_by: UUID
    filename: str
    url: str
    mime_type: str
    size: int
    created_at: datetime


# --- Admin ---
class BulkPublishRequest(BaseModel):
    post_ids: list[str]
    publish: StrictBool


class BulkResultResponse(BaseModel):
    matched: int
    modified: int


class StatsResponse(BaseModel):
    total: int
    deleted: int
    by_status: dict[str, int]

from collections.abc import Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Protocol
from uuid import UUID

from quillpress.domain.entities import (
    Comment,
    MediaDescriptor,
    Post,
    PostStatus,
    Revision,
)

TextField = Literal["title", "slug", "excerpt", "body"]


@dataclass(frozen=True)
class PostQuery:
    """Filter, order and window for post listings."""

    statuses: tuple[PostStatus, ...] = ()
    is_deleted: bool | None = False
    author_id: UUID | None = None
    tag: str | None = None
    category: str | None = None
    text: str | None = None
    text_fields: tuple[TextField, ...] = ("title", "excerpt", "body")
    order_by: Literal["published_at", "updated_at"] = "published_at"
    limit: int = 20
    offset: int = 0


class PostRepoPort(Protocol):
    def get_by_id(self, post_id: UUID) -> Post | None:
        ...

    def get_by_slug(self, slug: str) -> Post | None:
        ...

    def insert(self, post: Post) -> Post:
        ...

    def update(self, post: Post, *, expected_version: int) -> Post:
        """Write all mutable fields if the stored version matches. Raises StaleWriteError."""
        ...

    def delete(self, post_id: UUID) -> int:
        ...

    def list(self, query: PostQuery) -> tuple[list[Post], int]:
        """Returns (items, total_count) for the same filter."""
        ...

    def count_by_status(self) -> dict[str, int]:
        ...

    def count(self, *, is_deleted: bool | None = None) -> int:
        ...

    def increment_view_count(self, post_id: UUID) -> None:
        ...

    def adjust_comment_count(self, post_id: UUID, delta: int) -> tuple[int, int] | None:
        """Returns (previous, unclamped result); None if the post is unknown."""
        ...

    def bulk_set_status(
        self, post_ids: Sequence[UUID], *, publish: bool, now: datetime
    ) -> tuple[int, int]:
        """Returns (matched, modified)."""
        ...


class RevisionRepoPort(Protocol):
    def add(self, revision: Revision) -> Revision:
        ...

    def get(self, revision_id: UUID) -> Revision | None:
        ...

    def list_for_post(self, post_id: UUID) -> list[Revision]:
        """Newest first."""
        ...

    def delete_for_post(self, post_id: UUID) -> int:
        ...


class CommentRepoPort(Protocol):
    def save(self, comment: Comment) -> Comment:
        ...

    def delete_for_post(self, post_id: UUID) -> int:
        ...


class SlugRegistryPort(Protocol):
    def taken(self, base: str, *, exclude_post_id: UUID | None = None) -> set[str]:
        """Slugs equal to base or starting with 'base-', minus those held by exclude_post_id."""
        ...

    def claim(self, slug: str, post_id: UUID, now: datetime) -> bool:
        """Insert-if-absent on the unique slug key. False if another post holds it."""
        ...

    def retire(self, slug: str, post_id: UUID, now: datetime) -> None:
        ...

    def holder(self, slug: str) -> UUID | None:
        ...

    def delete_for_post(self, post_id: UUID) -> int:
        ...


class MediaRepoPort(Protocol):
    def save(self, media: MediaDescriptor) -> MediaDescriptor:
        ...

    def detach_post(self, post_id: UUID) -> int:
        ...


class TransactionPort(Protocol):
    """Repositories bound to one all-or-nothing storage transaction."""

    posts: PostRepoPort
    revisions: RevisionRepoPort
    comments: CommentRepoPort
    slugs: SlugRegistryPort
    media: MediaRepoPort


class StorePort(Protocol):
    def transaction(self, *, readonly: bool = False) -> AbstractContextManager[TransactionPort]:
        """
        All repository access goes through a transaction.

        Read-only transactions give a consistent snapshot; write transactions
        commit everything or nothing and raise DependencyError on storage failure.
        """
        ...

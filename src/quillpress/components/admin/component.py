"""
Admin component - operations across all posts, for admin roles only.

Listing and lookup see every post, deleted or not. Hard delete removes the
post with its revisions, comments and slug registry rows in one transaction.
Bulk publish is a single set-based update.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from quillpress.components.content import BulkResult, ContentService, PostPage
from quillpress.domain.entities import POST_STATUSES, Identity, Post, parse_id, try_parse_id
from quillpress.domain.errors import AuthorizationError, NotFoundError, ValidationError
from quillpress.ports.repo import PostQuery

from .models import PostStats

logger = logging.getLogger(__name__)


class AdminPostService:
    def __init__(self, content: ContentService):
        self.content = content
        self.store = content.store
        self.policy = content.policy
        self.rules = content.rules
        self.clock = content.clock

    def _require_admin(self, identity: Identity | None) -> None:
        if not self.policy.is_admin(identity):
            raise AuthorizationError("Admin role required")

    def list_posts(
        self,
        identity: Identity,
        page: int | None = None,
        limit: int | None = None,
        *,
        status: str | None = None,
        is_deleted: bool | None = None,
        author_id: str | UUID | None = None,
        q: str | None = None,
    ) -> PostPage:
        """All posts, most recently updated first. A malformed author filter is ignored."""
        self._require_admin(identity)

        filters: dict[str, Any] = {"is_deleted": is_deleted, "order_by": "updated_at"}
        if status:
            if status not in POST_STATUSES:
                raise ValidationError(f"Unknown status '{status}'", field="status")
            filters["statuses"] = (status,)
        if author_id:
            filters["author_id"] = try_parse_id(author_id)
        if q and q.strip():
            filters["text"] = q.strip()
            filters["text_fields"] = ("title", "slug", "excerpt")

        page, limit = self.rules.pagination.admin.clamp(page, limit)
        query = PostQuery(limit=limit, offset=(page - 1) * limit, **filters)
        with self.store.transaction(readonly=True) as tx:
            items, total = tx.posts.list(query)
        return PostPage(page=page, limit=limit, total=total, items=items)

    def get_post(self, identity: Identity, post_id: UUID | str) -> Post:
        self._require_admin(identity)
        pid = parse_id(post_id, "post_id")
        with self.store.transaction(readonly=True) as tx:
            post = tx.posts.get_by_id(pid)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    def soft_delete(self, identity: Identity, post_id: UUID | str) -> Post:
        self._require_admin(identity)
        return self.content.soft_delete(post_id, identity)

    def restore(self, identity: Identity, post_id: UUID | str) -> Post:
        self._require_admin(identity)
        return self.content.restore(post_id, identity)

    def force_delete(self, identity: Identity, post_id: UUID | str) -> None:
        """Permanently remove a post and everything that hangs off it. All or nothing."""
        self._require_admin(identity)
        pid = parse_id(post_id, "post_id")

        with self.store.transaction() as tx:
            if tx.posts.get_by_id(pid) is None:
                raise NotFoundError("Post not found")
            revisions = tx.revisions.delete_for_post(pid)
            comments = tx.comments.delete_for_post(pid)
            tx.media.detach_post(pid)
            tx.slugs.delete_for_post(pid)
            tx.posts.delete(pid)

        logger.info(
            "Force-deleted post %s (%d revisions, %d comments)", pid, revisions, comments
        )

    def bulk_set_published(
        self, identity: Identity, post_ids: Sequence[str | UUID], publish: bool
    ) -> BulkResult:
        """
        Publish or unpublish many posts at once.

        Malformed and unknown ids are skipped, as are deleted posts. ``matched``
        counts the live posts found, ``modified`` those whose status changed.
        """
        self._require_admin(identity)
        if not isinstance(publish, bool):
            raise ValidationError("publish must be true or false", field="publish")
        if not post_ids:
            raise ValidationError("post_ids must not be empty", field="post_ids")

        ids = list(dict.fromkeys(i for i in map(try_parse_id, post_ids) if i is not None))
        if not ids:
            return BulkResult(matched=0, modified=0)

        with self.store.transaction() as tx:
            matched, modified = tx.posts.bulk_set_status(ids, publish=publish, now=self.clock.now())

        logger.info(
            "Bulk %s: %d requested, %d matched, %d modified",
            "publish" if publish else "unpublish",
            len(post_ids),
            matched,
            modified,
        )
        return BulkResult(matched=matched, modified=modified)

    def stats(self, identity: Identity) -> PostStats:
        self._require_admin(identity)
        with self.store.transaction(readonly=True) as tx:
            by_status = tx.posts.count_by_status()
            total = tx.posts.count()
            deleted = tx.posts.count(is_deleted=True)
        return PostStats(
            total=total,
            deleted=deleted,
            by_status={status: by_status.get(status, 0) for status in POST_STATUSES},
        )

"""
Content component - the content repository.

Every content-changing operation follows the same path:
1. load the post and check the caller's permission
2. validate the lifecycle transition (quillpress.domain.state)
3. in one write transaction: snapshot the old title/body if they change,
   re-derive the slug if the title changes, then a version-guarded update

A no-op (nothing differs) writes nothing and returns the stored post.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

from quillpress.components.revisions import RevisionStore
from quillpress.components.slugs import SlugAllocator
from quillpress.domain.entities import (
    POST_STATUSES,
    Identity,
    LifecycleAction,
    MediaDescriptor,
    Post,
    Revision,
    parse_id,
)
from quillpress.domain.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from quillpress.domain.policy import PolicyEngine
from quillpress.domain.state import action_for_status, transition
from quillpress.ports.repo import PostQuery
from quillpress.ports.storage import AssetRejectedError, AssetStorageError
from quillpress.rules.models import PageRule, Rules

from .models import CreatePostInput, PostPage, PostPatch
from .ports import AssetStoragePort, ClockPort, StorePort, TransactionPort

logger = logging.getLogger(__name__)


# --- Field helpers ---


def _dedupe(values: Iterable[str]) -> list[str]:
    """Strip, drop empties and keep the first occurrence of each value."""
    cleaned = (v.strip() for v in values if isinstance(v, str))
    return list(dict.fromkeys(v for v in cleaned if v))


def _required(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field.capitalize()} is required", field=field)
    return value.strip()


class ContentService:
    def __init__(
        self,
        store: StorePort,
        policy: PolicyEngine,
        rules: Rules,
        clock: ClockPort,
        assets: AssetStoragePort | None = None,
    ):
        self.store = store
        self.policy = policy
        self.rules = rules
        self.clock = clock
        self.assets = assets

    # --- Derived fields ---

    def read_time(self, body: str) -> int:
        words = len(body.split())
        return max(1, round(words / self.rules.content.words_per_minute))

    def default_excerpt(self, body: str) -> str:
        """Body prefix of at most ``excerpt_length`` characters, cut back to a word boundary."""
        text = body.strip()
        limit = self.rules.content.excerpt_length
        if len(text) <= limit:
            return text

        cut = text[:limit]
        if text[limit].isspace() or cut[-1].isspace():
            return cut.rstrip()
        parts = cut.rsplit(None, 1)
        # A single word longer than the limit is cut mid-word.
        return parts[0] if len(parts) == 2 else cut

    # --- Writes ---

    def create(self, identity: Identity, inp: CreatePostInput) -> Post:
        self.policy.require(identity, "posts:create")

        title = _required(inp.title, "title")
        body = _required(inp.body, "body")
        if inp.status is not None and inp.status not in POST_STATUSES:
            raise ValidationError(f"Unknown status '{inp.status}'", field="status")

        now = self.clock.now()
        publish_now = inp.status == "published" and self.policy.is_admin(identity)

        post = Post(
            author_id=identity.id,
            title=title,
            slug="",
            body=body,
            excerpt=inp.excerpt.strip() if inp.excerpt else self.default_excerpt(body),
            tags=_dedupe(inp.tags),
            categories=_dedupe(inp.categories),
            feature_image_url=inp.feature_image_url or None,
            status="published" if publish_now else "draft",
            published_at=now if publish_now else None,
            read_time_minutes=self.read_time(body),
            meta=dict(inp.meta or {}),
            created_at=now,
            updated_at=now,
        )

        with self.store.transaction() as tx:
            slug = self._slugs(tx).allocate(title, post.id)
            post = tx.posts.insert(post.model_copy(update={"slug": slug}))

        logger.info("Created post %s (%s) status=%s", post.id, post.slug, post.status)
        return post

    def update(self, post_id: UUID | str, identity: Identity, patch: PostPatch) -> Post:
        post = self._load_live(post_id)
        self.policy.require(identity, "posts:edit", post)

        if patch.expected_version is not None and patch.expected_version != post.version:
            raise StaleWriteError(post.id)

        now = self._now(post)
        changes = self._content_changes(post, patch)
        updated = post.model_copy(update=changes) if changes else post

        if patch.status is not None:
            if patch.status not in POST_STATUSES:
                raise ValidationError(f"Unknown status '{patch.status}'", field="status")
            action = action_for_status(patch.status)
            if action == "publish":
                self.policy.require(identity, "posts:publish", post)
            updated = transition(
                updated, action, is_admin=self.policy.is_admin(identity), now=now
            )

        if updated is post:
            return post

        updated = updated.model_copy(update={"updated_at": now})
        with self.store.transaction() as tx:
            saved = self._write(tx, post, updated, identity.id)

        if saved.status != post.status:
            logger.info("Post %s moved %s -> %s", post.id, post.status, saved.status)
        return saved

    def publish(self, post_id: UUID | str, identity: Identity) -> Post:
        """Admins publish directly. Authors move a draft to pending review."""
        return self._lifecycle(post_id, identity, "publish")

    def unpublish(self, post_id: UUID | str, identity: Identity) -> Post:
        return self._lifecycle(post_id, identity, "unpublish")

    def soft_delete(self, post_id: UUID | str, identity: Identity) -> Post:
        post = self._load(post_id)
        self.policy.require(identity, "posts:delete", post)

        deleted = transition(
            post, "delete", is_admin=self.policy.is_admin(identity), now=self._now(post)
        )
        with self.store.transaction() as tx:
            tx.slugs.retire(post.slug, post.id, deleted.updated_at)
            saved = tx.posts.update(deleted, expected_version=post.version)

        logger.info("Soft-deleted post %s", post.id)
        return saved

    def restore(self, post_id: UUID | str, identity: Identity) -> Post:
        """Admin only. Restores to published if the post was ever published."""
        self.policy.require(identity, "posts:restore")
        post = self._load(post_id)

        restored = transition(post, "restore", is_admin=True, now=self._now(post))
        with self.store.transaction() as tx:
            if not tx.slugs.claim(post.slug, post.id, restored.updated_at):
                logger.warning(
                    "Cannot restore post %s: slug %s is held by post %s",
                    post.id,
                    post.slug,
                    tx.slugs.holder(post.slug),
                )
                raise ConflictError("Slug is held by another post")
            saved = tx.posts.update(restored, expected_version=post.version)

        logger.info("Restored post %s to %s", post.id, saved.status)
        return saved

    def restore_revision(
        self, post_id: UUID | str, revision_id: UUID | str, identity: Identity
    ) -> Post:
        post = self._load_live(post_id)
        self.policy.require(identity, "posts:edit", post)
        rid = parse_id(revision_id, "revision_id")
        now = self._now(post)

        with self.store.transaction() as tx:
            target = self._revisions(tx).restore(post, rid, identity.id)
            updates: dict[str, Any] = {
                "title": target.title,
                "body": target.content,
                "read_time_minutes": self.read_time(target.content),
                "updated_at": now,
            }
            saved = self._write(
                tx, post, post.model_copy(update=updates), identity.id, snapshot=False
            )

        logger.info("Post %s restored to revision %s", post.id, rid)
        return saved

    def attach_image(
        self,
        post_id: UUID | str,
        identity: Identity,
        filename: str,
        data: bytes,
        mime_type: str,
    ) -> MediaDescriptor:
        """Store an image for a post. Bytes go to asset storage, only the descriptor is kept."""
        if self.assets is None:
            raise DependencyError("Asset storage is not configured")

        post = self._load_live(post_id)
        self.policy.require(identity, "posts:upload", post)

        if not mime_type or not mime_type.startswith("image/"):
            raise ValidationError("Only image uploads are accepted", field="file")
        if not data:
            raise ValidationError("Uploaded file is empty", field="file")

        try:
            stored = self.assets.put(filename, data, mime_type)
        except AssetRejectedError as e:
            raise ValidationError(str(e), field="file") from e
        except AssetStorageError as e:
            logger.warning("Asset storage rejected %s for post %s: %s", filename, post.id, e)
            raise DependencyError("Asset storage failed") from e

        media = MediaDescriptor(
            post_id=post.id,
            uploaded_by=identity.id,
            filename=filename,
            url=stored.url,
            mime_type=stored.mime_type,
            size=stored.size,
            created_at=self.clock.now(),
        )
        with self.store.transaction() as tx:
            return tx.media.save(media)

    # --- Counters ---

    def increment_view_count(self, post_id: UUID | str) -> None:
        """Best effort. Failures are logged and never raised."""
        pid = parse_id(post_id, "post_id")
        try:
            with self.store.transaction() as tx:
                tx.posts.increment_view_count(pid)
        except DependencyError:
            logger.warning("Could not record view for post %s", pid, exc_info=True)

    def adjust_comment_count(self, post_id: UUID | str, delta: int) -> int:
        """Apply a moderation delta. The count never drops below zero."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("delta must be an integer", field="delta")
        pid = parse_id(post_id, "post_id")

        with self.store.transaction() as tx:
            result = tx.posts.adjust_comment_count(pid, delta)
        if result is None:
            raise NotFoundError("Post not found")

        previous, requested = result
        if requested < 0:
            logger.warning(
                "Comment count for post %s would drop to %d (was %d, delta %d); clamped to 0",
                pid,
                requested,
                previous,
                delta,
            )
        return max(requested, 0)

    # --- Reads ---

    def get(self, post_id: UUID | str, identity: Identity | None = None) -> Post:
        post = self._load_live(post_id)
        if post.status != "published":
            self.policy.require(identity, "posts:read_unpublished", post)
            return post

        self.increment_view_count(post.id)
        return post

    def get_by_slug(self, slug: str) -> Post:
        with self.store.transaction(readonly=True) as tx:
            post = tx.posts.get_by_slug(slug)
        if post is None or post.is_deleted or post.status != "published":
            raise NotFoundError("Post not found")

        self.increment_view_count(post.id)
        return post

    def list_published(
        self,
        page: int | None = None,
        limit: int | None = None,
        *,
        tag: str | None = None,
        category: str | None = None,
        author_id: UUID | str | None = None,
        q: str | None = None,
    ) -> PostPage:
        return self._page(
            self.rules.pagination.public,
            page,
            limit,
            statuses=("published",),
            tag=tag or None,
            category=category or None,
            author_id=parse_id(author_id, "author_id") if author_id else None,
            text=q.strip() if q and q.strip() else None,
        )

    def search(self, q: str | None, page: int | None = None, limit: int | None = None) -> PostPage:
        text = _required(q, "q")
        return self._page(
            self.rules.pagination.search,
            page,
            limit,
            statuses=("published",),
            text=text,
        )

    def list_drafts(
        self, identity: Identity, page: int | None = None, limit: int | None = None
    ) -> PostPage:
        """The caller's own drafts and pending posts, most recently updated first."""
        return self._page(
            self.rules.pagination.public,
            page,
            limit,
            statuses=("draft", "pending"),
            author_id=identity.id,
            order_by="updated_at",
        )

    def list_by_author(
        self,
        author_id: UUID | str,
        identity: Identity | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> PostPage:
        aid = parse_id(author_id, "author_id")
        if identity is not None and (identity.id == aid or self.policy.is_admin(identity)):
            return self._page(
                self.rules.pagination.public, page, limit, author_id=aid, order_by="updated_at"
            )
        return self._page(
            self.rules.pagination.public, page, limit, statuses=("published",), author_id=aid
        )

    def list_revisions(self, post_id: UUID | str, identity: Identity) -> list[Revision]:
        post = self._load(post_id)
        self.policy.require(identity, "posts:revisions", post)
        with self.store.transaction(readonly=True) as tx:
            return self._revisions(tx).list(post.id)

    # --- Internals ---

    def _slugs(self, tx: TransactionPort) -> SlugAllocator:
        return SlugAllocator(tx.slugs, self.rules.slug, self.clock)

    def _revisions(self, tx: TransactionPort) -> RevisionStore:
        return RevisionStore(tx.revisions, self.clock)

    def _now(self, post: Post) -> datetime:
        # updated_at never moves backwards, even if the clock does.
        return max(self.clock.now(), post.updated_at)

    def _load(self, post_id: UUID | str) -> Post:
        pid = parse_id(post_id, "post_id")
        with self.store.transaction(readonly=True) as tx:
            post = tx.posts.get_by_id(pid)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    def _load_live(self, post_id: UUID | str) -> Post:
        post = self._load(post_id)
        if post.is_deleted:
            raise NotFoundError("Post not found")
        return post

    def _lifecycle(
        self, post_id: UUID | str, identity: Identity, action: LifecycleAction
    ) -> Post:
        post = self._load_live(post_id)
        self.policy.require(identity, "posts:publish", post)

        updated = transition(
            post,
            action,
            is_admin=self.policy.is_admin(identity),
            now=self._now(post),
        )
        if updated is post:
            return post

        with self.store.transaction() as tx:
            saved = tx.posts.update(updated, expected_version=post.version)

        logger.info("Post %s %s: %s -> %s", post.id, action, post.status, saved.status)
        return saved

    def _content_changes(self, post: Post, patch: PostPatch) -> dict[str, Any]:
        changes: dict[str, Any] = {}

        if patch.title is not None:
            title = _required(patch.title, "title")
            if title != post.title:
                changes["title"] = title

        if patch.body is not None:
            body = _required(patch.body, "body")
            if body != post.body:
                changes["body"] = body
                changes["read_time_minutes"] = self.read_time(body)
                # An excerpt that was derived from the old body follows the new one.
                if patch.excerpt is None and post.excerpt == self.default_excerpt(post.body):
                    changes["excerpt"] = self.default_excerpt(body)

        if patch.excerpt is not None and patch.excerpt.strip() != post.excerpt:
            changes["excerpt"] = patch.excerpt.strip()

        if patch.tags is not None:
            tags = _dedupe(patch.tags)
            if tags != post.tags:
                changes["tags"] = tags

        if patch.categories is not None:
            categories = _dedupe(patch.categories)
            if categories != post.categories:
                changes["categories"] = categories

        if patch.feature_image_url is not None:
            url = patch.feature_image_url or None
            if url != post.feature_image_url:
                changes["feature_image_url"] = url

        if patch.meta is not None and patch.meta != post.meta:
            changes["meta"] = dict(patch.meta)

        return changes

    def _write(
        self,
        tx: TransactionPort,
        before: Post,
        after: Post,
        editor_id: UUID,
        *,
        snapshot: bool = True,
    ) -> Post:
        """Revision, slug and version-guarded update, all inside ``tx``."""
        if snapshot and (after.title != before.title or after.body != before.body):
            self._revisions(tx).snapshot(before.id, editor_id, before.title, before.body)

        if after.title != before.title:
            slugs = self._slugs(tx)
            slug = slugs.allocate(after.title, before.id, exclude_post_id=before.id)
            if slug != before.slug:
                slugs.retire(before.slug, before.id)
                after = after.model_copy(update={"slug": slug})

        return tx.posts.update(after, expected_version=before.version)

    def _page(
        self,
        rule: PageRule,
        page: int | None,
        limit: int | None,
        **filters: Any,
    ) -> PostPage:
        page, limit = rule.clamp(page, limit)
        query = PostQuery(limit=limit, offset=(page - 1) * limit, **filters)
        with self.store.transaction(readonly=True) as tx:
            items, total = tx.posts.list(query)
        return PostPage(page=page, limit=limit, total=total, items=items)

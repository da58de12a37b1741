"""
Revisions component - snapshots taken immediately before content is overwritten.

Revisions are never edited. They are removed only together with their post
on a hard delete.
"""

from __future__ import annotations

from uuid import UUID

from quillpress.domain.entities import Post, Revision
from quillpress.domain.errors import NotFoundError

from .ports import ClockPort, RevisionRepoPort


class RevisionStore:
    def __init__(self, repo: RevisionRepoPort, clock: ClockPort):
        self.repo = repo
        self.clock = clock

    def snapshot(
        self,
        post_id: UUID,
        editor_id: UUID | None,
        title: str,
        content: str,
        note: str | None = None,
    ) -> UUID:
        revision = Revision(
            post_id=post_id,
            editor_id=editor_id,
            title=title,
            content=content,
            note=note,
            created_at=self.clock.now(),
        )
        return self.repo.add(revision).id

    def list(self, post_id: UUID) -> list[Revision]:
        """Newest first."""
        return self.repo.list_for_post(post_id)

    def get(self, post_id: UUID, revision_id: UUID) -> Revision:
        revision = self.repo.get(revision_id)
        if revision is None or revision.post_id != post_id:
            raise NotFoundError("Revision not found")
        return revision

    def restore(self, post: Post, revision_id: UUID, editor_id: UUID | None) -> Revision:
        """
        Snapshot the post's current content and return the revision to apply.

        The caller writes the returned title and content to the post in the
        same transaction.
        """
        revision = self.get(post.id, revision_id)
        self.snapshot(
            post.id,
            editor_id,
            post.title,
            post.body,
            note=f"Before restoring revision {revision.id}",
        )
        return revision

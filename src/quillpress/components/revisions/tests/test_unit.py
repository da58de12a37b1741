"""
Revisions component unit tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from quillpress.components.revisions import RevisionStore
from quillpress.domain.entities import Post, Revision
from quillpress.domain.errors import NotFoundError

# --- Mock Implementations ---


class MockRevisionRepo:
    """In-memory revision repository assigning increasing seq numbers."""

    def __init__(self) -> None:
        self._rows: list[Revision] = []

    def add(self, revision: Revision) -> Revision:
        stored = revision.model_copy(update={"seq": len(self._rows) + 1})
        self._rows.append(stored)
        return stored

    def get(self, revision_id: UUID) -> Revision | None:
        return next((r for r in self._rows if r.id == revision_id), None)

    def list_for_post(self, post_id: UUID) -> list[Revision]:
        return sorted(
            (r for r in self._rows if r.post_id == post_id), key=lambda r: r.seq, reverse=True
        )

    def delete_for_post(self, post_id: UUID) -> int:
        before = len(self._rows)
        self._rows = [r for r in self._rows if r.post_id != post_id]
        return before - len(self._rows)


class MockClock:
    def __init__(self) -> None:
        self._time = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        self._time += timedelta(seconds=1)
        return self._time


# --- Fixtures ---


@pytest.fixture
def repo() -> MockRevisionRepo:
    return MockRevisionRepo()


@pytest.fixture
def store(repo: MockRevisionRepo) -> RevisionStore:
    return RevisionStore(repo, MockClock())


@pytest.fixture
def post() -> Post:
    return Post(author_id=uuid4(), title="Current", slug="current", body="current body")


# --- Tests ---


class TestSnapshot:
    def test_list_is_newest_first(self, store: RevisionStore, post: Post) -> None:
        for i in range(3):
            store.snapshot(post.id, post.author_id, f"t{i}", f"c{i}")

        titles = [r.title for r in store.list(post.id)]
        assert titles == ["t2", "t1", "t0"]

    def test_list_only_returns_own_post(self, store: RevisionStore, post: Post) -> None:
        store.snapshot(post.id, None, "mine", "x")
        store.snapshot(uuid4(), None, "other", "y")

        assert [r.title for r in store.list(post.id)] == ["mine"]

    def test_snapshot_returns_id(self, store: RevisionStore, post: Post) -> None:
        rid = store.snapshot(post.id, None, "t", "c", note="n")
        revision = store.get(post.id, rid)
        assert revision.note == "n"
        assert revision.content == "c"


class TestGetAndRestore:
    def test_get_foreign_revision_is_not_found(self, store: RevisionStore, post: Post) -> None:
        rid = store.snapshot(uuid4(), None, "t", "c")
        with pytest.raises(NotFoundError):
            store.get(post.id, rid)

    def test_get_unknown_revision_is_not_found(self, store: RevisionStore, post: Post) -> None:
        with pytest.raises(NotFoundError):
            store.get(post.id, uuid4())

    def test_restore_snapshots_current_content(self, store: RevisionStore, post: Post) -> None:
        rid = store.snapshot(post.id, None, "Old", "old body")

        target = store.restore(post, rid, post.author_id)

        assert (target.title, target.content) == ("Old", "old body")
        newest = store.list(post.id)[0]
        assert (newest.title, newest.content) == ("Current", "current body")
        assert len(store.list(post.id)) == 2

    def test_restore_foreign_revision_writes_nothing(
        self, store: RevisionStore, post: Post
    ) -> None:
        rid = store.snapshot(uuid4(), None, "t", "c")
        with pytest.raises(NotFoundError):
            store.restore(post, rid, None)
        assert store.list(post.id) == []

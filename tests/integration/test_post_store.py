import sqlite3
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from quillpress.adapters.sqlite.repos import (
    SQLitePostRepo,
    SQLiteRevisionRepo,
    SQLiteSlugRegistry,
)
from quillpress.domain.entities import Post, Revision
from quillpress.domain.errors import DependencyError, StaleWriteError
from quillpress.ports.repo import PostQuery

T0 = datetime(2025, 1, 1, tzinfo=UTC)


def make_post(title="Title", slug=None, **kw):
    return Post(
        author_id=kw.pop("author_id", uuid4()),
        title=title,
        slug=slug or title.lower().replace(" ", "-"),
        body=kw.pop("body", "body text"),
        created_at=kw.pop("created_at", T0),
        updated_at=kw.pop("updated_at", T0),
        **kw,
    )


@pytest.fixture
def posts(db_path):
    return SQLitePostRepo(db_path)


def test_insert_and_get_round_trip(posts):
    post = make_post(
        tags=["b", "a"], categories=["news"], meta={"seo": {"title": "x"}}, feature_image_url="/i.png"
    )
    posts.insert(post)

    loaded = posts.get_by_id(post.id)
    assert loaded == post
    assert posts.get_by_slug(post.slug).id == post.id
    assert posts.get_by_id(uuid4()) is None


def test_update_is_version_guarded(posts):
    post = posts.insert(make_post())

    saved = posts.update(post.model_copy(update={"title": "New"}), expected_version=1)
    assert saved.version == 2
    assert posts.get_by_id(post.id).title == "New"

    with pytest.raises(StaleWriteError):
        posts.update(post.model_copy(update={"title": "Lost"}), expected_version=1)
    assert posts.get_by_id(post.id).title == "New"


def test_update_keeps_counters(posts):
    post = posts.insert(make_post())
    posts.increment_view_count(post.id)
    posts.adjust_comment_count(post.id, 3)

    posts.update(post.model_copy(update={"body": "changed"}), expected_version=1)

    loaded = posts.get_by_id(post.id)
    assert (loaded.view_count, loaded.comment_count) == (1, 3)


def test_adjust_comment_count_clamps(posts):
    post = posts.insert(make_post())
    assert posts.adjust_comment_count(post.id, 1) == (0, 1)
    assert posts.adjust_comment_count(post.id, -4) == (1, -3)
    assert posts.get_by_id(post.id).comment_count == 0
    assert posts.adjust_comment_count(uuid4(), 1) is None


def test_list_filters_orders_and_counts(posts):
    author = uuid4()
    for i in range(5):
        posts.insert(
            make_post(
                f"Post {i}",
                author_id=author if i % 2 == 0 else uuid4(),
                status="published",
                published_at=T0 + timedelta(days=i),
                tags=["even"] if i % 2 == 0 else ["odd"],
            )
        )
    posts.insert(make_post("Hidden Draft"))

    items, total = posts.list(PostQuery(statuses=("published",), limit=2))
    assert total == 5
    assert [p.title for p in items] == ["Post 4", "Post 3"]

    items, total = posts.list(PostQuery(statuses=("published",), tag="even", limit=10))
    assert total == 3
    assert {p.title for p in items} == {"Post 0", "Post 2", "Post 4"}

    _, total = posts.list(PostQuery(author_id=author, limit=10))
    assert total == 3

    items, total = posts.list(PostQuery(text="HIDDEN", limit=10))
    assert [p.title for p in items] == ["Hidden Draft"]


def test_list_text_escapes_like_wildcards(posts):
    posts.insert(make_post("Fifty", body="100% sure"))
    posts.insert(make_post("Other", body="100 sure"))

    items, _ = posts.list(PostQuery(text="100%", limit=10))
    assert [p.title for p in items] == ["Fifty"]


def test_bulk_set_status(posts):
    draft = posts.insert(make_post("Draft"))
    live = posts.insert(make_post("Live", status="published", published_at=T0))
    gone = posts.insert(make_post("Gone", status="archived", is_deleted=True))

    now = T0 + timedelta(hours=1)
    matched, modified = posts.bulk_set_status([draft.id, live.id, gone.id], publish=True, now=now)

    assert (matched, modified) == (2, 1)
    published = posts.get_by_id(draft.id)
    assert published.status == "published"
    assert published.published_at == now
    assert published.version == 2
    assert posts.get_by_id(live.id).version == 1
    assert posts.get_by_id(gone.id).status == "archived"


def test_counts(posts):
    posts.insert(make_post("A"))
    posts.insert(make_post("B", status="published", published_at=T0))
    posts.insert(make_post("C", status="archived", is_deleted=True))

    assert posts.count() == 3
    assert posts.count(is_deleted=True) == 1
    assert posts.count_by_status() == {"draft": 1, "published": 1, "archived": 1}


def test_revisions_newest_first(db_path, posts):
    post = posts.insert(make_post())
    revisions = SQLiteRevisionRepo(db_path)
    # Same timestamp for all; seq keeps the order.
    for i in range(3):
        revisions.add(Revision(post_id=post.id, title=f"t{i}", content="c", created_at=T0))

    listed = revisions.list_for_post(post.id)
    assert [r.title for r in listed] == ["t2", "t1", "t0"]
    assert listed[0].seq > listed[1].seq
    assert revisions.delete_for_post(post.id) == 3


def test_slug_registry_claim(db_path, posts):
    first = posts.insert(make_post("One", slug="shared"))
    registry = SQLiteSlugRegistry(db_path)

    assert registry.claim("shared", first.id, T0) is True
    assert registry.claim("shared", uuid4(), T0) is False
    registry.retire("shared", first.id, T0)
    assert registry.claim("shared", first.id, T0) is True
    assert registry.holder("shared") == first.id
    assert registry.taken("shared") == {"shared"}
    assert registry.taken("shared", exclude_post_id=first.id) == set()


def test_slug_registry_taken_escapes_wildcards(db_path, posts):
    post = posts.insert(make_post("x", slug="axb-1"))
    registry = SQLiteSlugRegistry(db_path)
    registry.claim("axb-1", post.id, T0)
    # "_" in the base must not match any single character
    assert registry.taken("a_b") == set()
    assert registry.taken("axb") == {"axb-1"}


def test_transaction_rolls_back_everything(store):
    post = make_post()
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.posts.insert(post)
            tx.slugs.claim(post.slug, post.id, T0)
            raise RuntimeError("abort")

    with store.transaction(readonly=True) as tx:
        assert tx.posts.get_by_id(post.id) is None
        assert tx.slugs.holder(post.slug) is None


def test_storage_errors_become_dependency_errors(store):
    with pytest.raises(DependencyError) as exc:
        with store.transaction() as tx:
            tx.connection.execute("INSERT INTO no_such_table VALUES (1)")
    assert "no_such_table" not in exc.value.message
    assert isinstance(exc.value.__cause__, sqlite3.Error)


def test_unopenable_database_is_dependency_error(tmp_path):
    from quillpress.adapters.sqlite.store import SQLiteStore

    store = SQLiteStore(str(tmp_path / "missing-dir" / "db.sqlite"))
    with pytest.raises(DependencyError):
        with store.transaction():
            pass


def test_slug_unique_index_backstops_registry(posts):
    posts.insert(make_post("A", slug="dup"))
    with pytest.raises(sqlite3.IntegrityError):
        posts.insert(make_post("B", slug="dup"))

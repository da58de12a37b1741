"""
SQLite repositories for posts, revisions, comments, slugs and media.

Each repository either opens its own connection per call or works on an
externally supplied connection. The latter is how SQLiteStore binds several
repositories to one transaction.
"""

from __future__ import annotations

import builtins
import json
import sqlite3
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from quillpress.domain.entities import (
    Comment,
    MediaDescriptor,
    Post,
    Revision,
)
from quillpress.domain.errors import StaleWriteError
from quillpress.ports.repo import PostQuery

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------

_TEXT_COLUMNS = frozenset({"title", "slug", "excerpt", "body"})


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(
    db_path: str,
    timeout: float = 5.0,
    *,
    isolation_level: str | None = "DEFERRED",
) -> sqlite3.Connection:
    conn = sqlite3.connect(
        db_path, timeout=timeout, isolation_level=isolation_level, check_same_thread=False
    )
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def format_dt(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def parse_uuid(s: str | None) -> UUID | None:
    """Parse UUID string."""
    return UUID(s) if s else None


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _placeholders(n: int) -> str:
    return ",".join("?" * n)


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        *,
        timeout: float = 5.0,
    ):
        self.db_path = db_path
        self.timeout = timeout
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return connect(self.db_path, self.timeout)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _commit(self, conn: sqlite3.Connection) -> None:
        # An external connection belongs to a transaction committed by its owner.
        if self._should_close():
            conn.commit()


# -----------------------------------------------------------------------------
# Posts
# -----------------------------------------------------------------------------


class SQLitePostRepo(SQLiteRepoBase):
    """SQLite implementation of PostRepoPort."""

    def get_by_id(self, post_id: UUID) -> Post | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (str(post_id),)).fetchone()
            if not row:
                return None
            terms = self._load_terms(conn, [row["id"]])
            return self._map_row(row, terms)
        finally:
            if self._should_close():
                conn.close()

    def get_by_slug(self, slug: str) -> Post | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM posts WHERE slug = ?", (slug,)).fetchone()
            if not row:
                return None
            terms = self._load_terms(conn, [row["id"]])
            return self._map_row(row, terms)
        finally:
            if self._should_close():
                conn.close()

    def insert(self, post: Post) -> Post:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO posts (
                    id, author_id, title, slug, body, excerpt, feature_image_url,
                    status, published_at, is_deleted, read_time_minutes,
                    view_count, comment_count, meta_json, version,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(post.id),
                    str(post.author_id),
                    post.title,
                    post.slug,
                    post.body,
                    post.excerpt,
                    post.feature_image_url,
                    post.status,
                    format_dt(post.published_at),
                    int(post.is_deleted),
                    post.read_time_minutes,
                    post.view_count,
                    post.comment_count,
                    json.dumps(post.meta),
                    post.version,
                    format_dt(post.created_at),
                    format_dt(post.updated_at),
                ),
            )
            self._write_terms(conn, post)
            self._commit(conn)
            return post
        finally:
            if self._should_close():
                conn.close()

    def update(self, post: Post, *, expected_version: int) -> Post:
        """
        Compare-and-swap write of every mutable field.

        Counters are not written here; they are maintained by their own
        increments so that content edits never clobber them.
        """
        new_version = expected_version + 1
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE posts SET
                    title = ?, slug = ?, body = ?, excerpt = ?, feature_image_url = ?,
                    status = ?, published_at = ?, is_deleted = ?, read_time_minutes = ?,
                    meta_json = ?, version = ?, updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    post.title,
                    post.slug,
                    post.body,
                    post.excerpt,
                    post.feature_image_url,
                    post.status,
                    format_dt(post.published_at),
                    int(post.is_deleted),
                    post.read_time_minutes,
                    json.dumps(post.meta),
                    new_version,
                    format_dt(post.updated_at),
                    str(post.id),
                    expected_version,
                ),
            )
            if cursor.rowcount == 0:
                raise StaleWriteError(post.id)

            self._write_terms(conn, post)
            self._commit(conn)
            return post.model_copy(update={"version": new_version})
        finally:
            if self._should_close():
                conn.close()

    def delete(self, post_id: UUID) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM posts WHERE id = ?", (str(post_id),))
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

    def list(self, query: PostQuery) -> tuple[builtins.list[Post], int]:
        where, params = self._where(query)

        if query.order_by == "updated_at":
            order = "p.updated_at DESC, p.created_at DESC"
        else:
            order = "p.published_at DESC, p.created_at DESC"

        conn = self._get_conn()
        try:
            row = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM posts p WHERE {where}", params
            ).fetchone()
            total = row["cnt"] if row else 0

            rows = conn.execute(
                f"SELECT p.* FROM posts p WHERE {where} ORDER BY {order} LIMIT ? OFFSET ?",
                [*params, query.limit, query.offset],
            ).fetchall()

            terms = self._load_terms(conn, [r["id"] for r in rows])
            return [self._map_row(r, terms) for r in rows], total
        finally:
            if self._should_close():
                conn.close()

    def count_by_status(self) -> dict[str, int]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS cnt FROM posts GROUP BY status"
            ).fetchall()
            return {r["status"]: r["cnt"] for r in rows}
        finally:
            if self._should_close():
                conn.close()

    def count(self, *, is_deleted: bool | None = None) -> int:
        conn = self._get_conn()
        try:
            if is_deleted is None:
                row = conn.execute("SELECT COUNT(*) AS cnt FROM posts").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS cnt FROM posts WHERE is_deleted = ?", (int(is_deleted),)
                ).fetchone()
            return row["cnt"] if row else 0
        finally:
            if self._should_close():
                conn.close()

    def increment_view_count(self, post_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE posts SET view_count = view_count + 1 WHERE id = ?", (str(post_id),)
            )
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()

    def adjust_comment_count(self, post_id: UUID, delta: int) -> tuple[int, int] | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT comment_count FROM posts WHERE id = ?", (str(post_id),)
            ).fetchone()
            if not row:
                return None

            previous = row["comment_count"]
            requested = previous + delta
            conn.execute(
                "UPDATE posts SET comment_count = ? WHERE id = ?",
                (max(requested, 0), str(post_id)),
            )
            self._commit(conn)
            return previous, requested
        finally:
            if self._should_close():
                conn.close()

    def bulk_set_status(
        self, post_ids: Sequence[UUID], *, publish: bool, now: datetime
    ) -> tuple[int, int]:
        if not post_ids:
            return 0, 0

        ids = [str(i) for i in post_ids]
        in_clause = _placeholders(len(ids))
        conn = self._get_conn()
        try:
            row = conn.execute(
                f"SELECT COUNT(*) AS cnt FROM posts WHERE id IN ({in_clause}) AND is_deleted = 0",
                ids,
            ).fetchone()
            matched = row["cnt"] if row else 0

            stamp = format_dt(now)
            if publish:
                cursor = conn.execute(
                    f"""
                    UPDATE posts SET
                        status = 'published',
                        published_at = COALESCE(published_at, ?),
                        updated_at = MAX(updated_at, ?),
                        version = version + 1
                    WHERE id IN ({in_clause}) AND is_deleted = 0 AND status != 'published'
                    """,
                    [stamp, stamp, *ids],
                )
            else:
                cursor = conn.execute(
                    f"""
                    UPDATE posts SET
                        status = 'draft',
                        updated_at = MAX(updated_at, ?),
                        version = version + 1
                    WHERE id IN ({in_clause}) AND is_deleted = 0 AND status != 'draft'
                    """,
                    [stamp, *ids],
                )
            self._commit(conn)
            return matched, cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

    # --- internals ---

    def _where(self, query: PostQuery) -> tuple[str, builtins.list[Any]]:
        clauses = ["1=1"]
        params: builtins.list[Any] = []

        if query.statuses:
            clauses.append(f"p.status IN ({_placeholders(len(query.statuses))})")
            params.extend(query.statuses)
        if query.is_deleted is not None:
            clauses.append("p.is_deleted = ?")
            params.append(int(query.is_deleted))
        if query.author_id is not None:
            clauses.append("p.author_id = ?")
            params.append(str(query.author_id))
        for kind, value in (("tag", query.tag), ("category", query.category)):
            if value:
                clauses.append(
                    "EXISTS (SELECT 1 FROM post_terms t "
                    "WHERE t.post_id = p.id AND t.kind = ? AND t.value = ?)"
                )
                params.extend([kind, value])
        if query.text:
            columns = [c for c in query.text_fields if c in _TEXT_COLUMNS]
            if columns:
                pattern = f"%{escape_like(query.text.lower())}%"
                clauses.append(
                    "(" + " OR ".join(f"LOWER(p.{c}) LIKE ? ESCAPE '\\'" for c in columns) + ")"
                )
                params.extend([pattern] * len(columns))

        return " AND ".join(clauses), params

    def _write_terms(self, conn: sqlite3.Connection, post: Post) -> None:
        conn.execute("DELETE FROM post_terms WHERE post_id = ?", (str(post.id),))
        for kind, values in (("tag", post.tags), ("category", post.categories)):
            for position, value in enumerate(dict.fromkeys(values)):
                conn.execute(
                    "INSERT INTO post_terms (post_id, kind, value, position) VALUES (?, ?, ?, ?)",
                    (str(post.id), kind, value, position),
                )

    def _load_terms(
        self, conn: sqlite3.Connection, post_ids: builtins.list[str]
    ) -> dict[str, dict[str, builtins.list[str]]]:
        terms: dict[str, dict[str, builtins.list[str]]] = {
            pid: {"tag": [], "category": []} for pid in post_ids
        }
        if not post_ids:
            return terms

        rows = conn.execute(
            f"""
            SELECT post_id, kind, value FROM post_terms
            WHERE post_id IN ({_placeholders(len(post_ids))})
            ORDER BY post_id, kind, position
            """,
            post_ids,
        ).fetchall()
        for row in rows:
            terms[row["post_id"]][row["kind"]].append(row["value"])
        return terms

    def _map_row(
        self, row: dict[str, Any], terms: dict[str, dict[str, builtins.list[str]]]
    ) -> Post:
        post_terms = terms.get(row["id"], {})
        return Post(
            id=UUID(row["id"]),
            author_id=UUID(row["author_id"]),
            title=row["title"],
            slug=row["slug"],
            body=row["body"],
            excerpt=row["excerpt"],
            tags=post_terms.get("tag", []),
            categories=post_terms.get("category", []),
            feature_image_url=row["feature_image_url"],
            status=row["status"],
            published_at=parse_dt(row["published_at"]),
            is_deleted=bool(row["is_deleted"]),
            read_time_minutes=row["read_time_minutes"],
            view_count=row["view_count"],
            comment_count=row["comment_count"],
            meta=json.loads(row["meta_json"] or "{}"),
            version=row["version"],
            created_at=parse_dt(row["created_at"]) or datetime.min,  # should not be None
            updated_at=parse_dt(row["updated_at"]) or datetime.min,
        )


# -----------------------------------------------------------------------------
# Revisions
# -----------------------------------------------------------------------------


class SQLiteRevisionRepo(SQLiteRepoBase):
    """SQLite implementation of RevisionRepoPort. Rows are append-only."""

    def add(self, revision: Revision) -> Revision:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                INSERT INTO post_revisions (id, post_id, editor_id, title, content, note, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(revision.id),
                    str(revision.post_id),
                    str(revision.editor_id) if revision.editor_id else None,
                    revision.title,
                    revision.content,
                    revision.note,
                    format_dt(revision.created_at),
                ),
            )
            self._commit(conn)
            return revision.model_copy(update={"seq": cursor.lastrowid})
        finally:
            if self._should_close():
                conn.close()

    def get(self, revision_id: UUID) -> Revision | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM post_revisions WHERE id = ?", (str(revision_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def list_for_post(self, post_id: UUID) -> list[Revision]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM post_revisions WHERE post_id = ? ORDER BY seq DESC",
                (str(post_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def delete_for_post(self, post_id: UUID) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM post_revisions WHERE post_id = ?", (str(post_id),)
            )
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Revision:
        return Revision(
            id=UUID(row["id"]),
            post_id=UUID(row["post_id"]),
            editor_id=parse_uuid(row["editor_id"]),
            title=row["title"],
            content=row["content"],
            note=row["note"],
            seq=row["seq"],
            created_at=parse_dt(row["created_at"]) or datetime.min,
        )


# -----------------------------------------------------------------------------
# Comments
# -----------------------------------------------------------------------------


class SQLiteCommentRepo(SQLiteRepoBase):
    """Comment rows owned by the moderation collaborator."""

    def save(self, comment: Comment) -> Comment:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO comments (id, post_id, author_id, body, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    body=excluded.body,
                    status=excluded.status
                """,
                (
                    str(comment.id),
                    str(comment.post_id),
                    str(comment.author_id) if comment.author_id else None,
                    comment.body,
                    comment.status,
                    format_dt(comment.created_at),
                ),
            )
            self._commit(conn)
            return comment
        finally:
            if self._should_close():
                conn.close()

    def delete_for_post(self, post_id: UUID) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM comments WHERE post_id = ?", (str(post_id),))
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Slug registry
# -----------------------------------------------------------------------------


class SQLiteSlugRegistry(SQLiteRepoBase):
    """SQLite implementation of SlugRegistryPort."""

    def taken(self, base: str, *, exclude_post_id: UUID | None = None) -> set[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT slug, post_id FROM slug_registry WHERE slug = ? OR slug LIKE ? ESCAPE '\\'",
                (base, f"{escape_like(base)}-%"),
            ).fetchall()
            excluded = str(exclude_post_id) if exclude_post_id else None
            return {r["slug"] for r in rows if r["post_id"] != excluded}
        finally:
            if self._should_close():
                conn.close()

    def claim(self, slug: str, post_id: UUID, now: datetime) -> bool:
        conn = self._get_conn()
        try:
            try:
                conn.execute(
                    "INSERT INTO slug_registry (slug, post_id, claimed_at) VALUES (?, ?, ?)",
                    (slug, str(post_id), format_dt(now)),
                )
            except sqlite3.IntegrityError:
                # The key exists. Only the post that held it before may take it back.
                cursor = conn.execute(
                    "UPDATE slug_registry SET retired_at = NULL WHERE slug = ? AND post_id = ?",
                    (slug, str(post_id)),
                )
                if cursor.rowcount == 0:
                    return False
            self._commit(conn)
            return True
        finally:
            if self._should_close():
                conn.close()

    def retire(self, slug: str, post_id: UUID, now: datetime) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE slug_registry SET retired_at = ? WHERE slug = ? AND post_id = ?",
                (format_dt(now), slug, str(post_id)),
            )
            self._commit(conn)
        finally:
            if self._should_close():
                conn.close()

    def holder(self, slug: str) -> UUID | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT post_id FROM slug_registry WHERE slug = ?", (slug,)
            ).fetchone()
            return UUID(row["post_id"]) if row else None
        finally:
            if self._should_close():
                conn.close()

    def delete_for_post(self, post_id: UUID) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM slug_registry WHERE post_id = ?", (str(post_id),)
            )
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Media descriptors
# -----------------------------------------------------------------------------


class SQLiteMediaRepo(SQLiteRepoBase):
    def save(self, media: MediaDescriptor) -> MediaDescriptor:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO media (
                    id, post_id, uploaded_by, filename, url, mime_type, size, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(media.id),
                    str(media.post_id) if media.post_id else None,
                    str(media.uploaded_by),
                    media.filename,
                    media.url,
                    media.mime_type,
                    media.size,
                    format_dt(media.created_at),
                ),
            )
            self._commit(conn)
            return media
        finally:
            if self._should_close():
                conn.close()

    def detach_post(self, post_id: UUID) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE media SET post_id = NULL WHERE post_id = ?", (str(post_id),)
            )
            self._commit(conn)
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()

"""
SQLite store: one connection per transaction, repositories bound to it.

Write transactions start with BEGIN IMMEDIATE so the write lock is taken
up front; two writers serialize on the database lock and the loser waits
up to the busy timeout. Read-only transactions use a deferred BEGIN and
see one consistent snapshot.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from quillpress.adapters.sqlite.repos import (
    SQLiteCommentRepo,
    SQLiteMediaRepo,
    SQLitePostRepo,
    SQLiteRevisionRepo,
    SQLiteSlugRegistry,
    connect,
)
from quillpress.domain.errors import DependencyError

logger = logging.getLogger(__name__)


class SQLiteTransaction:
    """Repositories sharing one open transaction."""

    def __init__(self, db_path: str, conn: sqlite3.Connection):
        self.connection = conn
        self.posts = SQLitePostRepo(db_path, conn)
        self.revisions = SQLiteRevisionRepo(db_path, conn)
        self.comments = SQLiteCommentRepo(db_path, conn)
        self.slugs = SQLiteSlugRegistry(db_path, conn)
        self.media = SQLiteMediaRepo(db_path, conn)


class SQLiteStore:
    def __init__(self, db_path: str, *, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout

    @contextmanager
    def transaction(self, *, readonly: bool = False) -> Iterator[SQLiteTransaction]:
        try:
            conn = connect(self.db_path, self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            logger.error("Could not open database %s: %s", self.db_path, e)
            raise DependencyError("Storage is unavailable") from e

        try:
            conn.execute("BEGIN" if readonly else "BEGIN IMMEDIATE")
            yield SQLiteTransaction(self.db_path, conn)
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            _rollback(conn)
            logger.error("Storage transaction rolled back: %s", e)
            raise DependencyError("Storage is unavailable") from e
        except BaseException:
            _rollback(conn)
            raise
        finally:
            conn.close()


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.rollback()

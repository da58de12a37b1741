"""
Schema migrations for the quillpress database.

Migrations are numbered ``.sql`` files applied in name order. The part before a
``-- Down`` marker is the upgrade. Applied files are recorded in ``_migrations``
and each file is applied together with its record in one transaction.
"""

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
DOWN_MARKER = "-- Down"


def upgrade_section(script: str) -> str:
    return script.split(DOWN_MARKER, 1)[0]


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str | Path = MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " filename TEXT UNIQUE NOT NULL,"
            " applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
        )
        return conn

    def available(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def pending(self) -> list[str]:
        """Migration files not yet recorded as applied."""
        conn = self._connect()
        try:
            done = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
        finally:
            conn.close()
        return [name for name in self.available() if name not in done]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        todo = self.pending()
        if not todo:
            return []

        conn = self._connect()
        try:
            for filename in todo:
                logger.info("Applying migration %s", filename)
                self._apply(conn, filename)
        finally:
            conn.close()
        return todo

    def _apply(self, conn: sqlite3.Connection, filename: str) -> None:
        script = upgrade_section((self.migrations_dir / filename).read_text())
        record = filename.replace("'", "''")
        try:
            conn.executescript(
                f"BEGIN;\n{script}\n"
                f"INSERT INTO _migrations (filename) VALUES ('{record}');\n"
                "COMMIT;"
            )
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise RuntimeError(f"Migration {filename} failed: {e}") from e

from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import uuid4

import pytest

from quillpress.adapters.sqlite.migrator import SQLiteMigrator
from quillpress.adapters.sqlite.store import SQLiteStore
from quillpress.components.admin import AdminPostService
from quillpress.components.content import ContentService
from quillpress.domain.entities import Identity
from quillpress.domain.policy import PolicyEngine
from quillpress.rules.loader import load_rules


class SteppingClock:
    """Deterministic clock that moves forward one second per reading."""

    def __init__(self, start=None):
        self._time = start or datetime(2025, 1, 1, 9, 0, 0, tzinfo=UTC)

    def now(self):
        self._time += timedelta(seconds=1)
        return self._time


@pytest.fixture
def rules():
    # Load REAL rules from project root. Tests run from the project root.
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def policy(rules):
    return PolicyEngine(rules.rbac)


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "quillpress.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def store(db_path):
    return SQLiteStore(db_path)


@pytest.fixture
def content_service(store, policy, rules, clock):
    return ContentService(store, policy, rules, clock)


@pytest.fixture
def admin_service(content_service):
    return AdminPostService(content_service)


@pytest.fixture
def admin():
    return Identity(id=uuid4(), role="admin")


@pytest.fixture
def author():
    return Identity(id=uuid4(), role="author")


@pytest.fixture
def other_author():
    return Identity(id=uuid4(), role="author")

"""
Shared test fixtures and helpers for the Strata test suite.
"""

from typing import Any, Dict, List, Optional

import mongomock
import pytest

from strata.database import Database
from strata.engines.base import DatabaseEngine
from strata.engines.document import DocumentEngine
from strata.engines.relational import RelationalEngine


MEMORY_DSN = "sqlite:///:memory:"


# ============================================================================
# Stubs
# ============================================================================


class StubEngine(DatabaseEngine):
    """Engine without a backend; records lifecycle calls."""

    name = "stub"

    def __init__(self) -> None:
        super().__init__()
        self.setup_calls: List[Dict[str, Any]] = []
        self.teardown_calls = 0
        self.description = "stub://memory"

    @property
    def connection_description(self) -> str:
        return self.description if self._setup else "none"

    def setup(self, parameters: Dict[str, Any]) -> bool:
        self.setup_calls.append(dict(parameters))
        self._setup = True
        return True

    def teardown(self) -> bool:
        self.teardown_calls += 1
        return True

    def transaction_start(self) -> bool:
        return True

    def transaction_end(self) -> bool:
        return True

    def transaction_commit(self) -> bool:
        return True

    def transaction_rollback(self) -> bool:
        return True


class BrokenTeardownEngine(StubEngine):
    name = "broken"

    def teardown(self) -> bool:
        self.teardown_calls += 1
        raise RuntimeError("socket already closed")


class SingleUseIterable:
    """Raw cursor stand-in that can be iterated exactly once."""

    def __init__(self, records: List[Any]):
        self._records = records
        self.iterations = 0

    def __iter__(self):
        self.iterations += 1
        if self.iterations > 1:
            raise AssertionError("raw cursor iterated twice")
        return iter(self._records)


def mongomock_factory(uri: str, **options: Any) -> mongomock.MongoClient:
    """Client factory ignoring the pymongo-only options (listeners, appname)."""
    return mongomock.MongoClient()


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def engine():
    """Set-up in-memory SQLite engine with a ``users`` table."""
    eng = RelationalEngine()
    eng.setup({"dsn": MEMORY_DSN})
    eng.query("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT)")
    yield eng
    eng.teardown()


@pytest.fixture
def autocommit_engine():
    """Like ``engine`` but with ``transaction_autocommit`` enabled."""
    eng = RelationalEngine()
    eng.setup({"dsn": MEMORY_DSN, "transaction_autocommit": True})
    eng.query("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT UNIQUE, email TEXT)")
    yield eng
    eng.teardown()


@pytest.fixture
def document_engine():
    eng = DocumentEngine()
    eng.setup({"uri": "mongodb://localhost:27017", "client_factory": mongomock_factory})
    yield eng
    eng.teardown()


@pytest.fixture
def database():
    """Registry with a configured in-memory SQLite ``default`` connection."""
    db = Database({"default": {"engine": "relational", "parameters": {"dsn": MEMORY_DSN}}})
    yield db
    db.shutdown()


def make_database(config: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Database:
    return Database(config or {}, **kwargs)

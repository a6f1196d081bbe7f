"""Pytest fixtures for licensegate tests."""
import sqlite3
from typing import Any, Callable, List

import pytest

from licensegate.adapters.database import SqliteAdapter
from licensegate.adapters.session import MappingSessionAdapter
from licensegate.core.config import Settings
from licensegate.license.cache import VolatileCache
from licensegate.license.contracts import HttpClient
from licensegate.license.history import HistoryLogger
from licensegate.license.remote import RemoteValidator
from licensegate.license.resolver import ResolverConfig, StatusResolver
from licensegate.license.store import PersistentStateStore

from helpers import ENDPOINT, FrozenClock


# --- Infrastructure fixtures ---

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "license.db"


@pytest.fixture
def database(db_path) -> SqliteAdapter:
    return SqliteAdapter(db_path)


@pytest.fixture
def session() -> MappingSessionAdapter:
    return MappingSessionAdapter({})


@pytest.fixture
def test_settings(db_path) -> Settings:
    return Settings(
        server_url=ENDPOINT,
        cache_ttl_seconds=300,
        revalidation_interval_hours=24,
        db_path=db_path,
        support_contact="help@vendor.test",
    )


@pytest.fixture
def read_row(db_path) -> Callable[[int], dict]:
    """Read a license row directly, bypassing current-record selection."""
    def _read(license_id: int) -> dict:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        try:
            row = conn.execute("SELECT * FROM license_info WHERE id = ?", (license_id,)).fetchone()
        finally:
            conn.close()
        return dict(row)
    return _read


# --- Resolver fixtures ---

@pytest.fixture
def make_resolver(database, session, clock):
    """Factory fixture building a StatusResolver over the test database."""
    def _make(http: HttpClient, **config: Any) -> StatusResolver:
        sleeps: List[float] = []
        resolver = StatusResolver(
            store=PersistentStateStore(database),
            cache=VolatileCache(session),
            validator=RemoteValidator(http),
            history=HistoryLogger(database, clock=clock),
            config=ResolverConfig(endpoint=ENDPOINT, **config),
            clock=clock,
            sleep=sleeps.append,
        )
        resolver.sleeps = sleeps
        return resolver
    return _make

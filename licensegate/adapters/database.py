"""SQLite storage for the license record and validation history."""
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

import structlog

from ..license.contracts import DatabaseAdapter
from ..license.errors import DatabaseUnavailableError, PersistenceError
from ..license.models import format_timestamp, utcnow
from ..license.status import CURRENT_STATUSES

logger = structlog.get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS license_info (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    license_key TEXT UNIQUE NOT NULL,
    license_type TEXT,
    licensed_domain TEXT,
    last_validated_at TEXT,
    expires_at TEXT,
    features TEXT,
    last_check_at TEXT,
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'expired', 'suspended')),
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS license_validation_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    license_id INTEGER NOT NULL,
    validation_time TEXT NOT NULL,
    status TEXT NOT NULL,
    response_data TEXT,
    error_message TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (license_id) REFERENCES license_info(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_history_license ON license_validation_history(license_id);
CREATE INDEX IF NOT EXISTS idx_history_time ON license_validation_history(validation_time);
"""

_INSTALL_COLUMNS = ("license_type", "licensed_domain", "features", "last_validated_at")


def _bind(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return value


class SqliteAdapter(DatabaseAdapter):
    """
    SQLite-backed DatabaseAdapter.

    Opens a short-lived connection per call when given a path, or reuses a
    caller-owned connection. Timestamps are stored as ISO-8601 UTC text.
    """

    def __init__(
        self,
        database: Union[str, Path, sqlite3.Connection],
        timeout: float = 5.0,
        init_schema: bool = True,
    ):
        """
        Initialize the adapter.

        Args:
            database: Database file path, or an open sqlite3 connection
            timeout: Seconds to wait on a locked database (path mode only)
            init_schema: Create the tables if they do not exist
        """
        self._conn: Optional[sqlite3.Connection] = None
        self.db_path: Optional[Path] = None
        if isinstance(database, sqlite3.Connection):
            self._conn = database
        else:
            self.db_path = Path(database)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        if init_schema:
            self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = self._conn
        try:
            if conn is None:
                conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            raise PersistenceError(f"License database error: {e}") from e
        finally:
            if self._conn is None and conn is not None:
                conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    def get_license_info(self) -> Optional[Dict[str, Any]]:
        placeholders = ", ".join("?" for _ in CURRENT_STATUSES)
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM license_info WHERE status IN ({placeholders}) "
                "ORDER BY id DESC LIMIT 1",
                CURRENT_STATUSES,
            ).fetchone()
        return dict(row) if row is not None else None

    def save_license_info(self, fields: Mapping[str, Any]) -> bool:
        current = self.get_license_info()
        if current is None:
            return not fields
        if not fields:
            return True

        assignments = ", ".join(f'"{name}" = :{name}' for name in fields)
        params = {name: _bind(value) for name, value in fields.items()}
        params["__id"] = current["id"]
        with self._connect() as conn:
            conn.execute(f"UPDATE license_info SET {assignments} WHERE id = :__id", params)
        return True

    def log_validation(
        self,
        license_id: int,
        status: str,
        response_data: Optional[Any] = None,
        error_message: str = "",
        validation_time: Optional[datetime] = None,
    ) -> bool:
        if response_data and not isinstance(response_data, str):
            response_data = json.dumps(response_data, separators=(",", ":"), ensure_ascii=False)
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO license_validation_history
                   (license_id, validation_time, status, response_data, error_message)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    license_id,
                    format_timestamp(validation_time or utcnow()),
                    status,
                    response_data or None,
                    error_message or None,
                ),
            )
        return True

    def get_validation_history(
        self,
        license_id: Optional[int] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        query = "SELECT * FROM license_validation_history"
        params: List[Any] = []
        if license_id is not None:
            query += " WHERE license_id = ?"
            params.append(license_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def install_license(
        self,
        license_key: str,
        status: str = "active",
        expires_at: Optional[datetime] = None,
        **extra: Any,
    ) -> int:
        """
        Provision a license row.

        Args:
            license_key: The key issued by the license server
            status: Initial status
            expires_at: Initial expiry, if known
            **extra: Optional license_type, licensed_domain, features,
                last_validated_at

        Returns:
            The new row id
        """
        unknown = set(extra) - set(_INSTALL_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown license columns: {', '.join(sorted(unknown))}")

        columns = ["license_key", "status", "expires_at", *extra]
        values = [license_key, status, _bind(expires_at), *(_bind(v) for v in extra.values())]
        placeholders = ", ".join("?" for _ in columns)
        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO license_info ({', '.join(columns)}) VALUES ({placeholders})",
                values,
            )
            license_id = cursor.lastrowid
        logger.info("license_installed", license_id=license_id, status=status)
        return license_id


ConnectionFactory = Callable[[], Union[DatabaseAdapter, sqlite3.Connection, None]]


class CallableAdapter(DatabaseAdapter):
    """
    Defers connection acquisition until the first database call.

    The factory may return a DatabaseAdapter or a sqlite3 connection (wrapped
    in a SqliteAdapter). Its result is memoized; a factory returning None
    or raising surfaces as DatabaseUnavailableError and is asked again next time.
    """

    def __init__(self, factory: ConnectionFactory, timeout: float = 5.0):
        self._factory = factory
        self._timeout = timeout
        self._adapter: Optional[DatabaseAdapter] = None
        self._lock = threading.Lock()

    def _get_adapter(self) -> DatabaseAdapter:
        if self._adapter is None:
            with self._lock:
                if self._adapter is None:
                    try:
                        target = self._factory()
                    except Exception as e:
                        raise DatabaseUnavailableError(
                            f"Connection factory failed: {e}"
                        ) from e
                    if target is None:
                        raise DatabaseUnavailableError(
                            "Connection factory returned None - database connection is not available"
                        )
                    if isinstance(target, sqlite3.Connection):
                        target = SqliteAdapter(target, timeout=self._timeout)
                    self._adapter = target
        return self._adapter

    def get_license_info(self) -> Optional[Dict[str, Any]]:
        return self._get_adapter().get_license_info()

    def save_license_info(self, fields: Mapping[str, Any]) -> bool:
        return self._get_adapter().save_license_info(fields)

    def log_validation(
        self,
        license_id: int,
        status: str,
        response_data: Optional[Any] = None,
        error_message: str = "",
        validation_time: Optional[datetime] = None,
    ) -> bool:
        return self._get_adapter().log_validation(
            license_id, status, response_data, error_message, validation_time
        )

    def get_validation_history(
        self,
        license_id: Optional[int] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        return self._get_adapter().get_validation_history(license_id=license_id, limit=limit)

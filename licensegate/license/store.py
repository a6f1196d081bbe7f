"""Persistent state store for the current license record."""
import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import structlog

from .contracts import DatabaseAdapter
from .errors import PersistenceError, UnknownFieldError
from .models import UPDATABLE_FIELDS, LicenseRecord, format_timestamp
from .status import PERSISTABLE_STATUSES, coerce_status

logger = structlog.get_logger(__name__)


def _to_column(value: Any) -> Any:
    """Convert a domain value into something the database adapter can bind."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return value


class PersistentStateStore:
    """
    Reads and writes the single current LicenseRecord.

    The current record is the most recently created row whose status is
    active or expired. A suspended row is never selected: suspension is
    only ever asserted by the license server.
    """

    def __init__(self, database: DatabaseAdapter):
        self._database = database

    @property
    def database(self) -> DatabaseAdapter:
        return self._database

    def read(self) -> Optional[LicenseRecord]:
        """
        Get the current license record.

        Returns:
            LicenseRecord, or None when no active/expired record exists

        Raises:
            PersistenceError: If the underlying store fails
        """
        row = self._database.get_license_info()
        if row is None:
            return None
        try:
            return LicenseRecord.from_row(row)
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise PersistenceError(f"Unreadable license record: {e}") from e

    def write(self, fields: Mapping[str, Any]) -> bool:
        """
        Partially update the current record.

        Only the supplied fields are written; everything else is left as is.

        Args:
            fields: Column name to new value. Names must be in UPDATABLE_FIELDS.

        Returns:
            True on success

        Raises:
            UnknownFieldError: If a field name is not updatable
            ValueError: If the status is not one a record may carry
            PersistenceError: If there is no current record, or the store fails
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise UnknownFieldError(unknown)

        status = fields.get("status")
        if status is not None and coerce_status(status) not in PERSISTABLE_STATUSES:
            raise ValueError(f"Status {status!r} cannot be persisted")

        if not fields:
            return True

        columns: Dict[str, Any] = {name: _to_column(value) for name, value in fields.items()}
        if not self._database.save_license_info(columns):
            raise PersistenceError("No current license record to update")

        logger.debug("license_record_written", fields=sorted(columns))
        return True

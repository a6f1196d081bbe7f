"""Append-only audit trail of remote validation attempts."""
import json
from datetime import datetime
from typing import Any, Callable, List, Optional

import structlog

from .contracts import DatabaseAdapter
from .errors import PersistenceError
from .models import ValidationHistoryEntry, utcnow

logger = structlog.get_logger(__name__)


def encode_response_data(response_data: Any) -> Optional[str]:
    """Compact JSON for non-empty payloads, None otherwise."""
    if not response_data:
        return None
    if isinstance(response_data, str):
        return response_data
    return json.dumps(response_data, separators=(",", ":"), ensure_ascii=False, default=str)


class HistoryLogger:
    """
    Records every remote validation attempt for audit.

    Pure write: it never influences a verdict, and a failing store is
    reported as False rather than raised.
    """

    def __init__(
        self,
        database: DatabaseAdapter,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._database = database
        self._clock = clock

    def record(
        self,
        license_id: int,
        status: str,
        response_data: Any = None,
        error_message: Optional[str] = None,
    ) -> bool:
        """
        Append one history entry stamped with the current time.

        Args:
            license_id: Record the attempt belongs to
            status: "success", "error" or a license status
            response_data: Raw server payload (dict or text)
            error_message: Failure details, if any

        Returns:
            True if the entry was stored
        """
        try:
            stored = self._database.log_validation(
                license_id,
                status,
                encode_response_data(response_data),
                error_message or "",
                validation_time=self._clock(),
            )
        except PersistenceError as e:
            logger.warning("validation_history_write_failed", license_id=license_id, error=str(e))
            return False

        if not stored:
            logger.warning("validation_history_write_failed", license_id=license_id, error="rejected")
        return bool(stored)

    def recent(self, license_id: Optional[int] = None, limit: int = 20) -> List[ValidationHistoryEntry]:
        """Newest-first history entries, optionally for one license."""
        rows = self._database.get_validation_history(license_id=license_id, limit=limit)
        return [ValidationHistoryEntry.from_row(row) for row in rows]

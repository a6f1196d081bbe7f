"""Collaborator interfaces for the license subsystem.

Concrete implementations live in licensegate.adapters; tests and host
applications may supply their own.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import HttpResponse


class DatabaseAdapter(ABC):
    """Storage for the license record and its validation history."""

    @abstractmethod
    def get_license_info(self) -> Optional[Dict[str, Any]]:
        """
        Get the current license row.

        Returns:
            The most recently created row whose status is active or
            expired, or None when there is none.
        """

    @abstractmethod
    def save_license_info(self, fields: Mapping[str, Any]) -> bool:
        """
        Update the current license row with exactly the given columns.

        Returns:
            False when there is no current row to update (an empty mapping
            is always a success).
        """

    @abstractmethod
    def log_validation(
        self,
        license_id: int,
        status: str,
        response_data: Optional[Any] = None,
        error_message: str = "",
        validation_time: Optional[datetime] = None,
    ) -> bool:
        """
        Append one validation history row.

        `response_data` may be pre-encoded text or a mapping to encode.
        """

    def get_validation_history(
        self,
        license_id: Optional[int] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Newest-first history rows. Optional for write-only stores."""
        return []


class HttpClient(ABC):
    """Minimal HTTP transport used by the remote validator."""

    @abstractmethod
    def post(
        self,
        url: str,
        data: Mapping[str, Any],
        headers: Optional[Sequence[Tuple[str, str]]] = None,
        timeout: float = 10,
    ) -> HttpResponse:
        """
        POST `data` as JSON.

        A default Content-Type header is always sent; `headers` are appended
        after it, so duplicates are possible.

        Returns:
            HttpResponse with status_code 0 when no connection was opened.
        """


class SessionAdapter(ABC):
    """Key-value session storage scoped to one user session."""

    @abstractmethod
    def is_active(self) -> bool:
        """Whether the session has been started."""

    @abstractmethod
    def start(self) -> None:
        """Start the session. Raises CacheUnavailable if it cannot be started."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def has(self, key: str) -> bool:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

"""Session-backed cache for license verdicts."""
from datetime import datetime
from typing import Any, Optional

import structlog

from .contracts import SessionAdapter
from .models import CachedVerdict
from .status import LicenseStatus

logger = structlog.get_logger(__name__)

DEFAULT_PREFIX = "license_"
VERDICT_KEY = "verdict"


class VolatileCache:
    """
    Prefixed key-value access to the caller's session.

    The session is started lazily before each operation; starting an
    already active session is a no-op.
    """

    def __init__(self, session: SessionAdapter, prefix: str = DEFAULT_PREFIX):
        self._session = session
        self._prefix = prefix

    def _ensure_session(self) -> None:
        if not self._session.is_active():
            self._session.start()

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str, default: Any = None) -> Any:
        self._ensure_session()
        return self._session.get(self._key(key), default)

    def set(self, key: str, value: Any) -> None:
        self._ensure_session()
        self._session.set(self._key(key), value)

    def has(self, key: str) -> bool:
        self._ensure_session()
        return self._session.has(self._key(key))

    def remove(self, key: str) -> None:
        self._ensure_session()
        self._session.remove(self._key(key))

    def get_verdict(self) -> Optional[CachedVerdict]:
        """Get the cached verdict, or None if absent or unreadable."""
        data = self.get(VERDICT_KEY)
        if not data:
            return None
        try:
            return CachedVerdict.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.debug("cached_verdict_discarded", value=repr(data))
            self.remove(VERDICT_KEY)
            return None

    def put_verdict(self, status: LicenseStatus, computed_at: datetime) -> None:
        self.set(VERDICT_KEY, CachedVerdict(LicenseStatus(status), computed_at).to_dict())

    def clear_verdict(self) -> None:
        self.remove(VERDICT_KEY)

"""Session adapters for the verdict cache."""
from typing import Any, MutableMapping, Optional

from starlette.requests import HTTPConnection

from ..license.contracts import SessionAdapter
from ..license.errors import CacheUnavailable


class MappingSessionAdapter(SessionAdapter):
    """
    Session backed by an explicit mutable mapping.

    Pass the request's session dict (or any per-user store) at
    construction; without one, a private dict is created on start().
    """

    def __init__(self, mapping: Optional[MutableMapping[str, Any]] = None):
        self._data = mapping

    def is_active(self) -> bool:
        return self._data is not None

    def start(self) -> None:
        if self._data is None:
            self._data = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return self._data.get(key) is not None

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class StarletteSessionAdapter(MappingSessionAdapter):
    """
    Session stored in a Starlette/FastAPI request (SessionMiddleware).

    Values must be JSON-serializable, as the middleware signs them into a
    cookie.
    """

    def __init__(self, connection: HTTPConnection):
        super().__init__()
        self._connection = connection

    def start(self) -> None:
        if self._data is not None:
            return
        if "session" not in self._connection.scope:
            raise CacheUnavailable("SessionMiddleware is not installed")
        self._data = self._connection.session

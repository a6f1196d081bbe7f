"""Tests for VolatileCache and the session adapters."""
import pytest
from datetime import timedelta

from starlette.requests import Request

from licensegate.adapters.session import MappingSessionAdapter, StarletteSessionAdapter
from licensegate.license.cache import VolatileCache
from licensegate.license.errors import CacheUnavailable
from licensegate.license.status import LicenseStatus

from helpers import NOW


class CountingSession(MappingSessionAdapter):
    """Mapping session that counts start() calls."""

    def __init__(self, mapping=None):
        super().__init__(mapping)
        self.starts = 0

    def start(self) -> None:
        self.starts += 1
        super().start()


class TestVolatileCache:
    """Prefixed key-value access."""

    def test_keys_are_prefixed(self):
        data = {"user_id": 42}
        cache = VolatileCache(MappingSessionAdapter(data))

        cache.set("status", "active")

        assert data == {"user_id": 42, "license_status": "active"}
        assert cache.get("status") == "active"
        assert cache.has("status") is True
        assert cache.get("user_id") is None
        assert cache.has("user_id") is False

    def test_custom_prefix(self):
        data = {}
        VolatileCache(MappingSessionAdapter(data), prefix="lg:").set("x", 1)

        assert data == {"lg:x": 1}

    def test_get_default_and_remove(self):
        cache = VolatileCache(MappingSessionAdapter({}))

        assert cache.get("missing", "fallback") == "fallback"
        cache.set("k", "v")
        cache.remove("k")
        cache.remove("never-set")
        assert cache.has("k") is False

    def test_session_started_lazily_once(self):
        session = CountingSession()
        cache = VolatileCache(session)
        assert session.starts == 0

        cache.set("a", 1)
        cache.get("a")
        cache.has("a")

        assert session.starts == 1

    def test_active_session_is_not_restarted(self):
        data = {"license_a": 1}
        session = CountingSession(data)

        assert VolatileCache(session).get("a") == 1
        assert session.starts == 0

    def test_verdict_round_trip(self):
        cache = VolatileCache(MappingSessionAdapter({}))

        cache.put_verdict(LicenseStatus.EXPIRED, NOW)
        verdict = cache.get_verdict()

        assert verdict.status == LicenseStatus.EXPIRED
        assert verdict.computed_at == NOW
        assert verdict.age_seconds(NOW + timedelta(seconds=30)) == 30

    def test_verdict_is_json_friendly(self):
        data = {}
        VolatileCache(MappingSessionAdapter(data)).put_verdict(LicenseStatus.ACTIVE, NOW)

        assert data["license_verdict"] == {"status": "active", "computed_at": NOW.isoformat()}

    def test_corrupt_verdict_is_discarded(self):
        data = {"license_verdict": {"status": "bogus"}}
        cache = VolatileCache(MappingSessionAdapter(data))

        assert cache.get_verdict() is None
        assert "license_verdict" not in data

    def test_clear_verdict(self):
        cache = VolatileCache(MappingSessionAdapter({}))
        cache.put_verdict(LicenseStatus.ACTIVE, NOW)

        cache.clear_verdict()

        assert cache.get_verdict() is None


class TestStarletteSessionAdapter:
    """Request-scoped session."""

    def test_without_session_middleware(self):
        request = Request({"type": "http", "headers": []})
        cache = VolatileCache(StarletteSessionAdapter(request))

        with pytest.raises(CacheUnavailable):
            cache.get_verdict()

    def test_uses_request_session(self):
        session_data = {"csrf": "t"}
        request = Request({"type": "http", "headers": [], "session": session_data})
        cache = VolatileCache(StarletteSessionAdapter(request))

        cache.put_verdict(LicenseStatus.SUSPENDED, NOW)

        assert session_data["license_verdict"]["status"] == "suspended"
        assert session_data["csrf"] == "t"

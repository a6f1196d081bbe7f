"""
License facade for host applications.

Wires the database, session and HTTP adapters into a StatusResolver and
adds feature gating and enforcement helpers on top.

Usage:
    license = LicenseModule(get_connection=lambda: sqlite3.connect("app.db"))

    if license.is_active():
        ...

    decision = license.check_enforcement(method=request.method)
    if decision is not None:
        return HTMLResponse(decision.view, status_code=decision.http_code)
"""
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import structlog

from .adapters.database import CallableAdapter, ConnectionFactory, SqliteAdapter
from .adapters.http import HttpxClient
from .adapters.session import MappingSessionAdapter
from .api.views import render_view
from .core.config import Settings, settings as default_settings
from .license.cache import VolatileCache
from .license.contracts import DatabaseAdapter, HttpClient, SessionAdapter
from .license.errors import PersistenceError
from .license.features import FeatureGate
from .license.history import HistoryLogger
from .license.models import LicenseRecord, ValidationHistoryEntry, utcnow
from .license.remote import RemoteValidator
from .license.resolver import ResolverConfig, StatusResolver, Verdict
from .license.status import EnforcementMode, LicenseStatus
from .license.store import PersistentStateStore

logger = structlog.get_logger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

STATUS_MESSAGES = {
    LicenseStatus.EXPIRED: "License has expired. System is in read-only mode.",
    LicenseStatus.SUSPENDED: "License has been suspended. Please contact support.",
    LicenseStatus.UNKNOWN: "Invalid license. Please check your license key.",
}


@dataclass
class ValidationResult:
    """Result of an explicit validation request."""
    success: bool
    status: LicenseStatus
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    offline: bool = False


@dataclass(frozen=True)
class EnforcementDecision:
    """What the host should answer instead of serving the request."""
    status: LicenseStatus
    mode: EnforcementMode
    http_code: int
    view: str
    is_json: bool = False


class LicenseModule:
    """
    Framework-agnostic license validation and feature gating.

    Cheap to construct; build one per request when the session adapter is
    request-scoped.
    """

    def __init__(
        self,
        *,
        database_adapter: Optional[DatabaseAdapter] = None,
        get_connection: Optional[ConnectionFactory] = None,
        db_path: Optional[Union[str, Path]] = None,
        session_adapter: Optional[SessionAdapter] = None,
        http_client: Optional[HttpClient] = None,
        settings: Optional[Settings] = None,
        tiers: Optional[Dict[int, Dict[str, Any]]] = None,
        addons: Optional[Dict[str, List[str]]] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the license module.

        Args:
            database_adapter: Ready-made DatabaseAdapter
            get_connection: Lazy factory returning a sqlite3 connection or adapter
            db_path: SQLite file to use when neither of the above is given
            session_adapter: Session for the verdict cache; a private
                in-memory session is used by default
            http_client: Transport for the license server; httpx by default
            settings: Overrides the environment-loaded settings
            tiers: Custom tier configuration for feature gating
            addons: Custom addon configuration for feature gating
            clock: Time source (tests)
            sleep: Sleep function used between retries (tests)
        """
        self.settings = settings or default_settings
        self._clock = clock

        if database_adapter is not None:
            self.database = database_adapter
        elif get_connection is not None:
            self.database = CallableAdapter(get_connection, timeout=self.settings.db_timeout)
        else:
            self.database = SqliteAdapter(db_path or self.settings.db_path, timeout=self.settings.db_timeout)

        self.session = session_adapter or MappingSessionAdapter()
        http = http_client or HttpxClient(verify_ssl=self.settings.verify_ssl)

        self.store = PersistentStateStore(self.database)
        self.cache = VolatileCache(self.session, prefix=self.settings.session_prefix)
        self.history = HistoryLogger(self.database, clock=clock)
        self.resolver = StatusResolver(
            store=self.store,
            cache=self.cache,
            validator=RemoteValidator(http, default_timeout=self.settings.http_timeout),
            history=self.history,
            config=ResolverConfig.from_settings(self.settings),
            clock=clock,
            sleep=sleep,
        )
        self.feature_gate = FeatureGate(self._license_features, tiers, addons)

    # --- Validation ---

    def validate(self, license_key: str, domain: Optional[str] = None) -> ValidationResult:
        """
        Validate the installed license with the license server now.

        The given key replaces the stored one when the server answers.

        Args:
            license_key: License key to validate
            domain: Domain to validate against (defaults to settings.domain)

        Returns:
            ValidationResult; offline=True when the server was unreachable
            and the grace period applied
        """
        record = self._read_record()
        if record is None:
            return ValidationResult(False, LicenseStatus.UNKNOWN, "No license information found")

        verdict = self.resolver.revalidate(record, license_key=license_key, domain=domain)
        self.feature_gate.clear_cache()

        return ValidationResult(
            success=verdict.status == LicenseStatus.ACTIVE,
            status=verdict.status,
            message=verdict.message,
            data=verdict.data,
            offline=verdict.offline,
        )

    def is_validation_due(self) -> bool:
        return self.resolver.is_validation_due(self._read_record())

    # --- Status checks ---

    def resolve(self) -> Tuple[LicenseStatus, EnforcementMode]:
        return self.resolver.resolve()

    def resolve_verdict(self) -> Verdict:
        return self.resolver.resolve_verdict()

    def get_status(self) -> LicenseStatus:
        return self.resolve()[0]

    def get_mode(self) -> EnforcementMode:
        return self.resolve()[1]

    def is_active(self) -> bool:
        return self.get_status() == LicenseStatus.ACTIVE

    def is_expired(self) -> bool:
        return self.get_status() == LicenseStatus.EXPIRED

    def is_suspended(self) -> bool:
        return self.get_status() == LicenseStatus.SUSPENDED

    def is_read_only(self) -> bool:
        return self.get_mode() == EnforcementMode.READ_ONLY

    def is_blocked(self) -> bool:
        return self.get_mode() == EnforcementMode.BLOCKED

    # --- Feature gating ---

    def has_module(self, module: str) -> bool:
        return self.feature_gate.has_module(module)

    def get_enabled_modules(self) -> List[str]:
        return self.feature_gate.get_enabled_modules()

    def get_tier(self) -> Optional[Dict[str, Any]]:
        return self.feature_gate.get_tier()

    def get_tier_level(self) -> int:
        return self.feature_gate.get_tier_level()

    def has_addon(self, addon_key: str) -> bool:
        return self.feature_gate.has_addon(addon_key)

    def get_enabled_addons(self) -> List[str]:
        return self.feature_gate.get_enabled_addons()

    # --- Enforcement ---

    def check_enforcement(self, method: Optional[str] = None) -> Optional[EnforcementDecision]:
        """
        Decide whether the current request may proceed.

        Args:
            method: HTTP method of the request. In read-only mode, safe
                methods (GET, HEAD, OPTIONS) are let through; without a
                method every request is stopped.

        Returns:
            None if the request may proceed, otherwise an EnforcementDecision
            carrying a 403 and the page to show
        """
        status, mode = self.resolve()
        if mode == EnforcementMode.NORMAL:
            return None
        if mode == EnforcementMode.READ_ONLY and method and method.upper() in SAFE_METHODS:
            return None

        view = "expired" if mode == EnforcementMode.READ_ONLY else "suspended"
        return EnforcementDecision(
            status=status,
            mode=mode,
            http_code=403,
            view=render_view(view, status.value, self.settings.support_contact),
        )

    def check_enforcement_json(self, method: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """JSON variant of check_enforcement() for API endpoints."""
        status, mode = self.resolve()
        if mode == EnforcementMode.NORMAL:
            return None
        if mode == EnforcementMode.READ_ONLY and method and method.upper() in SAFE_METHODS:
            return None
        return {
            "error": True,
            "license_status": status.value,
            "enforcement_mode": mode.value,
            "message": self.get_status_message(status),
        }

    @staticmethod
    def get_status_message(status: LicenseStatus) -> str:
        return STATUS_MESSAGES.get(status, f"License status: {status.value}")

    # --- License info ---

    def get_license_info(self) -> Optional[Dict[str, Any]]:
        record = self._read_record()
        return record.to_dict() if record else None

    def get_days_until_expiration(self) -> Optional[int]:
        """Days left before expiry (rounded up), or None without an expiry date."""
        record = self._read_record()
        if record is None or record.expires_at is None:
            return None
        remaining = (record.expires_at - self._clock()).total_seconds() / 86400
        return math.ceil(remaining)

    def get_validation_history(self, limit: int = 20) -> List[ValidationHistoryEntry]:
        record = self._read_record()
        return self.history.recent(record.id if record else None, limit=limit)

    def _read_record(self) -> Optional[LicenseRecord]:
        try:
            return self.store.read()
        except PersistenceError as e:
            logger.warning("license_record_unreadable", error=str(e))
            return None

    def _license_features(self) -> Any:
        record = self._read_record()
        return record.features if record else None

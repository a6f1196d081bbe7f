"""License status resolution for licensegate."""
from .cache import VolatileCache
from .errors import (
    CacheUnavailable,
    DatabaseUnavailableError,
    LicenseError,
    PersistenceError,
    TransportError,
    UnknownFieldError,
)
from .features import FeatureGate
from .history import HistoryLogger
from .models import (
    CachedVerdict,
    LicenseRecord,
    RemoteValidationOutcome,
    ValidationHistoryEntry,
)
from .remote import RemoteValidator
from .resolver import ResolverConfig, StatusResolver, Verdict
from .status import EnforcementMode, LicenseStatus, enforcement_mode_for
from .store import PersistentStateStore

__all__ = [
    "VolatileCache",
    "CacheUnavailable",
    "DatabaseUnavailableError",
    "LicenseError",
    "PersistenceError",
    "TransportError",
    "UnknownFieldError",
    "FeatureGate",
    "HistoryLogger",
    "CachedVerdict",
    "LicenseRecord",
    "RemoteValidationOutcome",
    "ValidationHistoryEntry",
    "RemoteValidator",
    "ResolverConfig",
    "StatusResolver",
    "Verdict",
    "EnforcementMode",
    "LicenseStatus",
    "enforcement_mode_for",
    "PersistentStateStore",
]

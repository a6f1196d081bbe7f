"""licensegate - license status resolution and enforcement.

Modules:
- license: status resolver, persistent store, session cache, remote validator, history
- adapters: SQLite, httpx and session implementations of the collaborator interfaces
- api: FastAPI dependency, middleware and blocking pages
- module: LicenseModule facade
"""

__version__ = "0.1.0"

from licensegate.license import EnforcementMode, LicenseStatus, StatusResolver
from licensegate.module import EnforcementDecision, LicenseModule, ValidationResult

__all__ = [
    "EnforcementMode",
    "LicenseStatus",
    "StatusResolver",
    "EnforcementDecision",
    "LicenseModule",
    "ValidationResult",
]

"""License status and enforcement mode definitions."""
from enum import Enum


class LicenseStatus(str, Enum):
    """Status of a license."""
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"


class EnforcementMode(str, Enum):
    """Restriction applied to the host application."""
    NORMAL = "normal"
    READ_ONLY = "read_only"
    BLOCKED = "blocked"


_MODES = {
    LicenseStatus.ACTIVE: EnforcementMode.NORMAL,
    LicenseStatus.EXPIRED: EnforcementMode.READ_ONLY,
    LicenseStatus.SUSPENDED: EnforcementMode.BLOCKED,
    LicenseStatus.UNKNOWN: EnforcementMode.BLOCKED,
}

# Statuses a record may carry in storage
PERSISTABLE_STATUSES = frozenset({
    LicenseStatus.ACTIVE,
    LicenseStatus.EXPIRED,
    LicenseStatus.SUSPENDED,
})

# Statuses eligible to be the "current" record
CURRENT_STATUSES = (LicenseStatus.ACTIVE.value, LicenseStatus.EXPIRED.value)


def enforcement_mode_for(status: LicenseStatus) -> EnforcementMode:
    """Map a license status to the enforcement mode it implies."""
    return _MODES.get(LicenseStatus(status), EnforcementMode.BLOCKED)


def coerce_status(value) -> LicenseStatus:
    """Parse a stored status, treating anything unrecognised as UNKNOWN."""
    if isinstance(value, LicenseStatus):
        return value
    try:
        return LicenseStatus(str(value).lower())
    except ValueError:
        return LicenseStatus.UNKNOWN


def map_from_server(server_status: str, is_valid: bool) -> LicenseStatus:
    """
    Map the license server's status vocabulary onto LicenseStatus.

    Args:
        server_status: Raw status string from the server
        is_valid: The server's own validity flag

    Returns:
        ACTIVE, EXPIRED or SUSPENDED. An unrecognised status falls back on
        the validity flag, and an explicit denial blocks.
    """
    normalized = (server_status or "").strip().lower()
    if normalized in ("active", "valid"):
        return LicenseStatus.ACTIVE
    if normalized in ("expired", "inactive"):
        return LicenseStatus.EXPIRED
    if normalized in ("suspended", "revoked", "invalid"):
        return LicenseStatus.SUSPENDED
    return LicenseStatus.ACTIVE if is_valid else LicenseStatus.SUSPENDED

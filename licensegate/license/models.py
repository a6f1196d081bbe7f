"""Data model for license records, cached verdicts and validation history."""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .status import LicenseStatus, coerce_status


# Columns StatusResolver (or the facade) may update on the current record
UPDATABLE_FIELDS = frozenset({
    "status",
    "expires_at",
    "last_validated_at",
    "last_check_at",
    "license_key",
    "license_type",
    "licensed_domain",
    "features",
})

_CORE_COLUMNS = ("id", "status", "expires_at", "last_validated_at")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (with or without "T" separator or
    offset) and Unix timestamps. Naive values are taken to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as ISO-8601 UTC text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


@dataclass(frozen=True)
class LicenseRecord:
    """
    The single current license row.

    Attributes:
        id: Stable row identifier
        status: Persisted status (active, expired or suspended)
        expires_at: End of validity; None means the license never lapses by date
        last_validated_at: Last successful remote check; None means never
        extra: Every other column, passed through untouched
    """
    id: int
    status: LicenseStatus
    expires_at: Optional[datetime] = None
    last_validated_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LicenseRecord":
        """Create from a database row mapping."""
        return cls(
            id=int(row["id"]),
            status=coerce_status(row.get("status")),
            expires_at=parse_timestamp(row.get("expires_at")),
            last_validated_at=parse_timestamp(row.get("last_validated_at")),
            extra={k: v for k, v in row.items() if k not in _CORE_COLUMNS},
        )

    @property
    def license_key(self) -> Optional[str]:
        return self.extra.get("license_key")

    @property
    def features(self) -> Optional[Any]:
        """Decoded features column, or None when empty or unreadable."""
        raw = self.extra.get("features")
        if raw is None or raw == "":
            return None
        if isinstance(raw, (dict, list)):
            return raw
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return None

    def is_expired_at(self, now: datetime) -> bool:
        """True once `now` has reached the expiry date."""
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable dict."""
        return {
            **self.extra,
            "id": self.id,
            "status": self.status.value,
            "expires_at": format_timestamp(self.expires_at) if self.expires_at else None,
            "last_validated_at": (
                format_timestamp(self.last_validated_at) if self.last_validated_at else None
            ),
        }


@dataclass(frozen=True)
class CachedVerdict:
    """A short-lived verdict kept in the session."""
    status: LicenseStatus
    computed_at: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.computed_at).total_seconds()

    def to_dict(self) -> Dict[str, str]:
        return {
            "status": self.status.value,
            "computed_at": format_timestamp(self.computed_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CachedVerdict":
        return cls(
            status=LicenseStatus(data["status"]),
            computed_at=parse_timestamp(data["computed_at"]),
        )


@dataclass(frozen=True)
class ValidationHistoryEntry:
    """One row of the append-only validation history."""
    license_id: int
    validation_time: datetime
    status: str
    response_data: Optional[Any] = None
    error_message: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ValidationHistoryEntry":
        response_data = row.get("response_data")
        if isinstance(response_data, str):
            try:
                response_data = json.loads(response_data)
            except ValueError:
                pass
        return cls(
            id=row.get("id"),
            license_id=int(row["license_id"]),
            validation_time=parse_timestamp(row["validation_time"]),
            status=row["status"],
            response_data=response_data,
            error_message=row.get("error_message"),
        )


@dataclass(frozen=True)
class HttpResponse:
    """Raw result of one HTTP POST, as returned by an HttpClient."""
    success: bool
    status_code: int
    body: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RemoteValidationOutcome:
    """Typed result of one round trip to the license server."""
    success: bool
    status_code: int
    body: Optional[str] = None
    error: Optional[str] = None

    @property
    def connected(self) -> bool:
        """False when the connection never opened."""
        return self.status_code != 0

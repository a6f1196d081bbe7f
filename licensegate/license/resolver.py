"""Status resolution: cached verdict, persisted record or remote revalidation.

Each check consults, in order:

1. the session cache (trusted within its TTL, no other I/O);
2. the persisted record (trusted while unexpired and recently validated);
3. the license server, falling back to the persisted status while offline
   trust lasts (until expires_at, or a grace period after the last
   validation for licenses without one), and to EXPIRED afterwards.

StatusResolver holds no durable state and can be built per request.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

import structlog

from ..core.backoff import RetrySchedule
from ..core.config import Settings
from .cache import VolatileCache
from .errors import CacheUnavailable, LicenseError, PersistenceError, TransportError
from .history import HistoryLogger
from .models import LicenseRecord, utcnow
from .remote import RemoteValidator
from .response import ServerVerdict, parse_server_response
from .status import EnforcementMode, LicenseStatus, enforcement_mode_for
from .store import PersistentStateStore

logger = structlog.get_logger(__name__)


class VerdictSource:
    """Where a verdict came from."""
    CACHE = "cache"
    STORE = "store"
    REMOTE = "remote"
    FALLBACK = "fallback"
    NONE = "none"


@dataclass
class ResolverConfig:
    """Timing and endpoint settings for StatusResolver."""
    endpoint: str
    cache_ttl: timedelta = timedelta(minutes=5)
    revalidation_interval: timedelta = timedelta(hours=24)
    grace_period: timedelta = timedelta(days=7)
    http_timeout: float = 10.0
    max_attempts: int = 1
    backoff_base_delay: float = 0.5
    backoff_max_delay: float = 5.0
    domain: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResolverConfig":
        return cls(
            endpoint=settings.server_url,
            cache_ttl=timedelta(seconds=settings.cache_ttl_seconds),
            revalidation_interval=timedelta(hours=settings.revalidation_interval_hours),
            grace_period=timedelta(days=settings.grace_period_days),
            http_timeout=settings.http_timeout,
            max_attempts=max(1, settings.max_attempts),
            backoff_base_delay=settings.backoff_base_delay,
            backoff_max_delay=settings.backoff_max_delay,
            domain=settings.domain,
        )


@dataclass
class Verdict:
    """Outcome of one status check."""
    status: LicenseStatus
    mode: EnforcementMode
    source: str
    message: str = ""
    offline: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, status: LicenseStatus, source: str, message: str = "", **kwargs) -> "Verdict":
        return cls(status, enforcement_mode_for(status), source, message, **kwargs)

    def as_tuple(self) -> Tuple[LicenseStatus, EnforcementMode]:
        return self.status, self.mode


class StatusResolver:
    """
    Composes cache, store and remote validator into one authoritative status.

    resolve() never raises: every source failure degrades to the most
    conservative verdict still justified by what is known.
    """

    def __init__(
        self,
        store: PersistentStateStore,
        cache: VolatileCache,
        validator: RemoteValidator,
        history: HistoryLogger,
        config: ResolverConfig,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.cache = cache
        self.validator = validator
        self.history = history
        self.config = config
        self._clock = clock
        self._sleep = sleep

    def resolve(self) -> Tuple[LicenseStatus, EnforcementMode]:
        """Resolve the current license status and its enforcement mode."""
        return self.resolve_verdict().as_tuple()

    def resolve_verdict(self) -> Verdict:
        """Like resolve(), but also report where the verdict came from."""
        now = self._clock()
        try:
            return self._resolve(now)
        except LicenseError as e:
            logger.warning("license_resolution_failed", error=str(e))
            return Verdict.of(LicenseStatus.UNKNOWN, VerdictSource.NONE, str(e))
        except Exception as e:
            logger.exception("license_resolution_crashed", error=str(e))
            return Verdict.of(LicenseStatus.UNKNOWN, VerdictSource.NONE, "License check failed")

    def _resolve(self, now: datetime) -> Verdict:
        cached = self._read_cache(now)
        if cached is not None:
            return cached

        try:
            record = self.store.read()
        except PersistenceError as e:
            logger.warning("license_record_unreadable", error=str(e))
            return Verdict.of(LicenseStatus.UNKNOWN, VerdictSource.NONE, "License store unavailable")

        if record is None:
            logger.info("license_record_missing")
            return Verdict.of(LicenseStatus.UNKNOWN, VerdictSource.NONE, "No license information found")

        if self.is_fresh(record, now):
            self._write_cache(record.status, now)
            logger.debug("license_verdict_from_store", license_id=record.id, status=record.status.value)
            return Verdict.of(record.status, VerdictSource.STORE)

        return self.revalidate(record, now=now)

    def _read_cache(self, now: datetime) -> Optional[Verdict]:
        try:
            cached = self.cache.get_verdict()
        except CacheUnavailable as e:
            logger.debug("license_cache_unavailable", error=str(e))
            return None

        if cached is None:
            return None
        age = cached.age_seconds(now)
        if 0 <= age < self.config.cache_ttl.total_seconds():
            logger.debug("license_verdict_from_cache", status=cached.status.value, age=age)
            return Verdict.of(cached.status, VerdictSource.CACHE)
        return None

    def _write_cache(self, status: LicenseStatus, now: datetime) -> None:
        try:
            self.cache.put_verdict(status, now)
        except CacheUnavailable as e:
            logger.debug("license_cache_unavailable", error=str(e))

    def _write_store(self, record: LicenseRecord, fields: Dict[str, Any]) -> bool:
        try:
            return self.store.write(fields)
        except PersistenceError as e:
            logger.warning("license_record_write_failed", license_id=record.id, error=str(e))
            return False

    def is_fresh(self, record: LicenseRecord, now: datetime) -> bool:
        """A record is fresh while unexpired and validated within the interval."""
        if record.is_expired_at(now) or record.last_validated_at is None:
            return False
        return now - record.last_validated_at < self.config.revalidation_interval

    def is_validation_due(self, record: Optional[LicenseRecord], now: Optional[datetime] = None) -> bool:
        if record is None:
            return True
        return not self.is_fresh(record, now or self._clock())

    def revalidate(
        self,
        record: LicenseRecord,
        now: Optional[datetime] = None,
        license_key: Optional[str] = None,
        domain: Optional[str] = None,
    ) -> Verdict:
        """
        Check the record against the license server.

        Args:
            record: Current license record
            now: Reference time; defaults to the resolver's clock
            license_key: Key to send instead of the stored one
            domain: Domain to send instead of the configured one

        Returns:
            The server's verdict, or the grace-period fallback when every
            attempt failed
        """
        now = now or self._clock()
        key = license_key or record.license_key
        domain = domain or self.config.domain

        payload: Dict[str, Any] = {"license_key": key}
        if domain:
            payload["domain"] = domain

        schedule = RetrySchedule(
            self.config.max_attempts,
            self.config.backoff_base_delay,
            self.config.backoff_max_delay,
        )
        last_error: Optional[TransportError] = None

        for attempt, pause in enumerate(schedule.pauses(), start=1):
            if pause:
                self._sleep(pause)
            try:
                server = self._attempt(payload)
            except TransportError as e:
                last_error = e
                self.history.record(record.id, "error", None, str(e))
                logger.warning(
                    "license_revalidation_attempt_failed",
                    license_id=record.id,
                    attempt=attempt,
                    status_code=e.status_code,
                    error=str(e),
                )
                continue

            return self._apply_server_verdict(record, server, now, license_key, domain)

        return self._fallback(record, now, last_error)

    def _attempt(self, payload: Dict[str, Any]) -> ServerVerdict:
        outcome = self.validator.validate(
            self.config.endpoint,
            payload,
            timeout=self.config.http_timeout,
        )
        if not outcome.success:
            raise TransportError(
                f"License server connection failed: {outcome.error or 'Unknown error'}",
                status_code=outcome.status_code,
            )
        return parse_server_response(outcome.body)

    def _apply_server_verdict(
        self,
        record: LicenseRecord,
        server: ServerVerdict,
        now: datetime,
        license_key: Optional[str],
        domain: Optional[str],
    ) -> Verdict:
        fields: Dict[str, Any] = {
            "status": server.status,
            "last_check_at": now,
        }
        if server.valid:
            fields["last_validated_at"] = now
            fields["license_type"] = server.license_type
            fields["features"] = server.features
        if server.expires_at is not None:
            fields["expires_at"] = server.expires_at
        if license_key:
            fields["license_key"] = license_key
        if domain and server.valid:
            fields["licensed_domain"] = domain

        self._write_store(record, fields)
        self._write_cache(server.status, now)
        self.history.record(
            record.id,
            server.history_status,
            server.raw,
            None if server.valid else server.message,
        )

        logger.info(
            "license_revalidated",
            license_id=record.id,
            status=server.status.value,
            server_status=server.server_status,
        )
        return Verdict.of(server.status, VerdictSource.REMOTE, server.message, data=server.raw)

    def offline_deadline(self, record: LicenseRecord) -> Optional[datetime]:
        """
        End of offline trust in the record.

        The expiry date when known; otherwise the grace period counted from
        the last successful validation. None means no trust is left.
        """
        if record.expires_at is not None:
            return record.expires_at
        if record.last_validated_at is not None:
            return record.last_validated_at + self.config.grace_period
        return None

    def _fallback(
        self,
        record: LicenseRecord,
        now: datetime,
        error: Optional[TransportError],
    ) -> Verdict:
        reason = str(error) if error else "License server unreachable"
        fields: Dict[str, Any] = {"last_check_at": now}
        deadline = self.offline_deadline(record)

        if deadline is None or now >= deadline:
            status = LicenseStatus.EXPIRED
            fields["status"] = status
            if record.expires_at is not None:
                message = "License server unreachable and license has expired. System is in read-only mode."
            else:
                message = "License server unreachable and offline grace period has ended. System is in read-only mode."
        else:
            status = record.status
            message = f"Using cached license status (offline mode): {reason}"

        self._write_store(record, fields)
        self._write_cache(status, now)

        logger.warning(
            "license_offline_fallback",
            license_id=record.id,
            status=status.value,
            trusted_until=deadline.isoformat() if deadline else None,
        )
        return Verdict.of(status, VerdictSource.FALLBACK, message, offline=True)

"""Exceptions raised by the license sources.

All of them are absorbed by StatusResolver.resolve(); host code only sees
them when it calls a store, cache or adapter directly.
"""
from typing import Optional


class LicenseError(Exception):
    """Base class for license subsystem errors."""


class TransportError(LicenseError):
    """The license server could not be reached or gave an unusable answer."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(LicenseError):
    """The license store failed or had no current record to update."""


class DatabaseUnavailableError(PersistenceError):
    """
    Raised when the lazy connection factory returns None or fails.

    Typically happens while the host application is still being installed
    and its database does not exist yet.
    """

    def __init__(self, message: str = "Database connection is not available"):
        super().__init__(message)


class UnknownFieldError(PersistenceError):
    """A write named a column outside the updatable field set."""

    def __init__(self, fields, message: Optional[str] = None):
        self.fields = sorted(fields)
        super().__init__(message or f"Unknown license fields: {', '.join(self.fields)}")


class CacheUnavailable(LicenseError):
    """The session backing the verdict cache could not be started."""

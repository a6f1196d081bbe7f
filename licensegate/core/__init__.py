"""Core modules for licensegate."""
from .backoff import RetrySchedule
from .config import Settings, settings

__all__ = [
    "RetrySchedule",
    "Settings",
    "settings",
]

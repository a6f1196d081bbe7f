"""Concrete database, HTTP and session adapters."""
from .database import CallableAdapter, SqliteAdapter
from .http import HttpxClient
from .session import MappingSessionAdapter, StarletteSessionAdapter

__all__ = [
    "CallableAdapter",
    "SqliteAdapter",
    "HttpxClient",
    "MappingSessionAdapter",
    "StarletteSessionAdapter",
]

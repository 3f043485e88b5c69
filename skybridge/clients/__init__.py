"""Expose constructed client wrappers."""

from .provider import (
    ProviderAuthError,
    ProviderClient,
    ProviderError,
    ProviderUnavailableError,
)
from .rate_limit_store import SQLiteRateLimitStore
from .sqlite_store import SQLiteSessionStore

__all__ = [
    "ProviderAuthError",
    "ProviderClient",
    "ProviderError",
    "ProviderUnavailableError",
    "SQLiteRateLimitStore",
    "SQLiteSessionStore",
]

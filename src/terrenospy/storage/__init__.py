"""Local persistence for the property list.

This package provides the offline cache the store falls back to when the
remote store cannot be reached.
"""

from .cache import (
    AUTH_ERROR_KEY,
    CACHE_KEY,
    CREDENTIAL_ERROR_KEY,
    PENDING_PUSH_KEY,
    SYNC_KEY,
    CacheUnavailable,
    LocalCache,
)

__all__ = [
    "AUTH_ERROR_KEY",
    "CACHE_KEY",
    "CREDENTIAL_ERROR_KEY",
    "PENDING_PUSH_KEY",
    "SYNC_KEY",
    "CacheUnavailable",
    "LocalCache",
]

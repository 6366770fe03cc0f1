"""Structured results returned by the property store."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .property import PropertyRecord


class ErrorKind(str, Enum):
    """Failure categories the store reports to callers."""

    NETWORK_UNAVAILABLE = "network_unavailable"
    REMOTE_AUTH_FAILURE = "remote_auth_failure"
    REMOTE_NOT_FOUND = "remote_not_found"
    REMOTE_MALFORMED_RESPONSE = "remote_malformed_response"
    VALIDATION_FAILURE = "validation_failure"
    NOT_FOUND = "not_found"
    CACHE_UNAVAILABLE = "cache_unavailable"


class RemoteStatus(str, Enum):
    """What happened to the remote leg of an operation."""

    SYNCED = "synced"
    QUEUED = "queued"
    LOCAL_ONLY = "local_only"
    FAILED = "failed"


@dataclass
class StoreOutcome:
    """Result of a store operation.

    ``success`` reflects the local outcome: a write that reached the cache
    but not the remote is still a success, with ``remote`` set to
    ``FAILED`` and ``error`` naming the remote problem.
    """

    success: bool
    record: Optional[PropertyRecord] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    remote: RemoteStatus = RemoteStatus.LOCAL_ONLY
    cached: bool = False

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "StoreOutcome":
        return cls(success=False, error=error, message=message)

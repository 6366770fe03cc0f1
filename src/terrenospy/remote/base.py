"""Abstract base class for remote property stores.

A remote store holds the whole property list as one document. Reads return
the full snapshot and writes replace it; there is no partial update and no
optimistic-concurrency check, so a push can silently overwrite a concurrent
push from another session.

Example usage:
    class MyRemote(RemoteStore):
        name = "my_remote"

        async def fetch(self):
            ...

        async def push(self, records):
            ...

        def is_configured(self):
            return True
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from ..models.outcome import ErrorKind
from ..models.property import PropertyRecord


@dataclass
class RemoteSnapshot:
    """Properties read from a remote store in one round-trip."""

    properties: list[PropertyRecord] = field(default_factory=list)
    last_updated: Optional[datetime] = None
    skipped: int = 0  # records dropped because they failed validation or repeated an id
    unparsed: list[dict] = field(default_factory=list)  # raw records that failed validation


class RemoteStore(ABC):
    """Interface the PropertyStore uses to mirror its list remotely.

    Attributes:
        name: Identifier used in log messages and error sources
    """

    name: str

    @abstractmethod
    async def fetch(self) -> RemoteSnapshot:
        """Read the full remote document.

        Raises:
            RemoteStoreError: On any transport, HTTP or decoding failure
        """

    @abstractmethod
    async def push(self, records: Sequence[PropertyRecord]) -> None:
        """Replace the remote document with ``records``.

        Raises:
            RemoteStoreError: On any transport or HTTP failure
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """Check that credentials look superficially well-formed.

        This does not contact the remote; a configured store can still
        fail with RemoteAuthFailure on first use.
        """

    async def close(self) -> None:
        """Release network resources."""


class RemoteStoreError(Exception):
    """Base exception for remote store errors.

    Attributes:
        source: Name of the remote store that raised the error
        message: Error description
        kind: Error category reported to callers
    """

    kind: ErrorKind = ErrorKind.NETWORK_UNAVAILABLE

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class NetworkUnavailable(RemoteStoreError):
    """Raised on timeouts, transport errors and unexpected HTTP statuses."""

    kind = ErrorKind.NETWORK_UNAVAILABLE


class RemoteAuthFailure(RemoteStoreError):
    """Raised when the remote rejects the credentials (HTTP 401)."""

    kind = ErrorKind.REMOTE_AUTH_FAILURE

    def __init__(self, source: str, status_code: int = 401):
        self.status_code = status_code
        super().__init__(source, f"Authentication rejected (HTTP {status_code})")


class RemoteNotFound(RemoteStoreError):
    """Raised when the remote document does not exist (HTTP 404)."""

    kind = ErrorKind.REMOTE_NOT_FOUND


class RemoteMalformedResponse(RemoteStoreError):
    """Raised when the remote answered but its payload cannot be decoded."""

    kind = ErrorKind.REMOTE_MALFORMED_RESPONSE

"""Property store: the authoritative in-memory list and its two mirrors.

The store owns the list of property records for a session and mediates
between the remote store (a Gist) and the local cache:

- load() prefers the remote and falls back to the cache
- create/update/delete change the list first, then push the whole list
  remotely and always write the cache
- reconcile() merges the remote snapshot into the list (see merge.py)

The store is the only place backend exceptions become StoreOutcome
values; none of its public coroutines raise on backend failures.
"""

import logging
import secrets
import string
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import Settings
from ..display import search_text
from ..models.outcome import ErrorKind, RemoteStatus, StoreOutcome
from ..models.property import PropertyDraft, PropertyPatch, PropertyRecord, utcnow
from ..remote.base import RemoteAuthFailure, RemoteStore, RemoteStoreError
from ..remote.gist import GistClient
from ..storage.cache import AUTH_ERROR_KEY, CREDENTIAL_ERROR_KEY, PENDING_PUSH_KEY, LocalCache
from .merge import merge_properties, same_properties

logger = logging.getLogger(__name__)

ID_ALPHABET = string.digits + string.ascii_lowercase
ID_SUFFIX_LENGTH = 9

PushResult = tuple[RemoteStatus, Optional[ErrorKind], Optional[str]]


class RemoteAvailability(str, Enum):
    """Whether the remote store may be used in this session."""

    ENABLED = "enabled"
    DISABLED = "disabled"


def _describe_validation_error(exc: ValidationError) -> str:
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err["loc"]})
    if not fields:
        return "Invalid property data"
    return f"Missing or invalid fields: {', '.join(fields)}"


class PropertyStore:
    """In-memory property list with best-effort remote persistence.

    Remote availability is a two-state machine. It starts ENABLED when the
    storage mode is "gist" and the credentials look well-formed, and moves
    to DISABLED for the lifetime of the store on an authentication failure.
    While disabled or offline every operation uses the cache only.

    Example:
        store = PropertyStore(Settings())
        await store.load()

        outcome = await store.create({"title": "Lote A", "location": "Luque"})
        if not outcome.success:
            print(outcome.message)

        results = store.search("luque")
        await store.close()
    """

    def __init__(
        self,
        settings: Settings,
        remote: Optional[RemoteStore] = None,
        cache: Optional[LocalCache] = None,
    ):
        """Initialize the store.

        Args:
            settings: Immutable configuration snapshot
            remote: Remote store; defaults to a GistClient built from settings
            cache: Local cache; defaults to one under settings.cache_dir
        """
        self.settings = settings
        self.remote = remote if remote is not None else GistClient.from_settings(settings)
        self.cache = cache if cache is not None else LocalCache(
            settings.cache_dir, settings.cache_db_name
        )
        self.is_online = True

        self._properties: list[PropertyRecord] = []
        self._retired_ids: set[str] = set()
        self._push_in_flight = False
        self._push_pending = False

        self.availability = self._initial_availability()

    def _initial_availability(self) -> RemoteAvailability:
        if self.settings.storage_mode != "gist":
            logger.info("Storage mode is local; the remote store is not used")
            return RemoteAvailability.DISABLED

        if not self.remote.is_configured():
            logger.error(f"{self.remote.name} credentials are not configured; using local cache only")
            self.cache.set_flag(CREDENTIAL_ERROR_KEY, True)
            return RemoteAvailability.DISABLED

        self.cache.set_flag(CREDENTIAL_ERROR_KEY, False)
        return RemoteAvailability.ENABLED

    # ==================== State ====================

    @property
    def remote_enabled(self) -> bool:
        """True when the remote may be contacted right now."""
        return self.availability is RemoteAvailability.ENABLED and self.is_online

    def set_online(self, online: bool) -> bool:
        """Record a connectivity change.

        Returns:
            True if this was a transition from offline to online
        """
        came_back = online and not self.is_online
        if self.is_online and not online:
            logger.info("Offline - using local cache")
        self.is_online = online
        return came_back

    def _record_remote_error(self, exc: RemoteStoreError) -> str:
        """Log a remote failure and apply its state transition."""
        if isinstance(exc, RemoteAuthFailure):
            if self.availability is RemoteAvailability.ENABLED:
                self.availability = RemoteAvailability.DISABLED
                self.cache.set_flag(AUTH_ERROR_KEY, True)
                logger.warning(
                    f"{exc}: remote store disabled for this session, using local cache only"
                )
            return "Remote store rejected the credentials; changes are kept locally"

        logger.error(f"Remote store error: {exc}")
        return f"Remote store unavailable ({exc.message}); changes are kept locally"

    # ==================== Reads ====================

    def list_properties(self) -> list[PropertyRecord]:
        return list(self._properties)

    @property
    def properties(self) -> list[PropertyRecord]:
        return self.list_properties()

    def __len__(self) -> int:
        return len(self._properties)

    def get_by_id(self, property_id: str) -> Optional[PropertyRecord]:
        for record in self._properties:
            if record.id == property_id:
                return record
        return None

    def featured(self) -> list[PropertyRecord]:
        return [r for r in self._properties if r.featured]

    def search(self, term: Optional[str]) -> list[PropertyRecord]:
        """Case-insensitive substring search.

        Matches against title, location, description and formatted price.
        A blank term returns the full list.
        """
        if term is None or not term.strip():
            return self.list_properties()
        needle = term.strip().casefold()
        return [r for r in self._properties if needle in search_text(r)]

    async def load(self) -> list[PropertyRecord]:
        """Load the list from the remote store, falling back to the cache.

        When the cache holds changes an earlier session could not push, they
        are merged into the remote list and pushed instead of being replaced.

        Returns:
            The loaded list (possibly empty); never raises on backend failures
        """
        if self.remote_enabled:
            try:
                snapshot = await self.remote.fetch()
            except RemoteStoreError as e:
                self._record_remote_error(e)
            else:
                self.cache.set_flag(AUTH_ERROR_KEY, False)
                if self.cache.get_flag(PENDING_PUSH_KEY):
                    # An earlier session saved changes the remote never got
                    logger.info("Cache holds unsynced changes; merging with remote")
                    self._properties = merge_properties(
                        self.cache.load_properties(), snapshot.properties
                    )
                    await self._push_if_changed(snapshot.properties)
                else:
                    self._properties = list(snapshot.properties)
                self.cache.save_properties(self._properties)
                return self.list_properties()

        self._properties = self.cache.load_properties()
        return self.list_properties()

    # ==================== Writes ====================

    async def create(self, draft: Union[PropertyDraft, Mapping[str, Any]]) -> StoreOutcome:
        """Validate and add a new listing at the top of the list."""
        try:
            if not isinstance(draft, PropertyDraft):
                draft = PropertyDraft.model_validate(draft)
            data = draft.model_dump()
            data["images"] = self._normalise_images(data["images"])
            now = utcnow()
            record = PropertyRecord(id=self._new_id(), created_at=now, updated_at=now, **data)
        except ValidationError as e:
            return StoreOutcome.failure(ErrorKind.VALIDATION_FAILURE, _describe_validation_error(e))

        self._properties.insert(0, record)
        logger.info(f"Created property {record.id} ({record.title})")
        return await self._persist(record)

    async def update(
        self,
        property_id: str,
        patch: Union[PropertyPatch, Mapping[str, Any]],
    ) -> StoreOutcome:
        """Merge ``patch`` into an existing listing."""
        index = self._index_of(property_id)
        if index is None:
            return StoreOutcome.failure(ErrorKind.NOT_FOUND, f"Property {property_id} not found")

        current = self._properties[index]
        try:
            if not isinstance(patch, PropertyPatch):
                patch = PropertyPatch.model_validate(patch)
            updated = patch.apply_to(current)
        except ValidationError as e:
            return StoreOutcome.failure(ErrorKind.VALIDATION_FAILURE, _describe_validation_error(e))

        updated = updated.model_copy(update={
            "images": self._normalise_images(updated.images),
            "updated_at": self._next_timestamp(current.updated_at),
        })
        self._properties[index] = updated
        logger.info(f"Updated property {property_id}")
        return await self._persist(updated)

    async def delete(self, property_id: str) -> StoreOutcome:
        index = self._index_of(property_id)
        if index is None:
            return StoreOutcome.failure(ErrorKind.NOT_FOUND, f"Property {property_id} not found")

        removed = self._properties.pop(index)
        self._retired_ids.add(property_id)
        logger.info(f"Deleted property {property_id}")
        return await self._persist(removed)

    async def _persist(self, record: PropertyRecord) -> StoreOutcome:
        """Dual-write the current list: cache always, remote when enabled."""
        cached = self.cache.save_properties(self._properties)
        remote_status, error, message = await self._push()
        if remote_status in (RemoteStatus.FAILED, RemoteStatus.LOCAL_ONLY):
            self._mark_unsynced()
        return StoreOutcome(
            success=True,
            record=record,
            error=error,
            message=message,
            remote=remote_status,
            cached=cached,
        )

    async def _push(self) -> PushResult:
        """Push the whole list, coalescing writes made while a push is in flight.

        A write arriving during a push only marks the pending slot; the
        in-flight push then pushes the list once more when it completes.
        The caller's status reflects its own push: a failed follow-up push
        is logged and left for the next load or reconcile.
        """
        if not self.remote_enabled:
            return RemoteStatus.LOCAL_ONLY, None, None

        if self._push_in_flight:
            self._push_pending = True
            logger.debug("Push in flight; change queued for the next push")
            return RemoteStatus.QUEUED, None, None

        self._push_in_flight = True
        first = True
        try:
            while True:
                self._push_pending = False
                try:
                    await self.remote.push(list(self._properties))
                except RemoteStoreError as e:
                    message = self._record_remote_error(e)
                    if first:
                        return RemoteStatus.FAILED, e.kind, message
                    logger.warning("Queued changes were not pushed; kept in the local cache")
                    self._mark_unsynced()
                    return RemoteStatus.SYNCED, None, None
                first = False
                if not self._push_pending:
                    break
                if not self.remote_enabled:
                    self._mark_unsynced()
                    return RemoteStatus.SYNCED, None, None
                logger.debug("Pushing queued changes")
        finally:
            self._push_in_flight = False

        self.cache.set_flag(AUTH_ERROR_KEY, False)
        self.cache.set_flag(PENDING_PUSH_KEY, False)
        return RemoteStatus.SYNCED, None, None

    async def _push_if_changed(self, remote_records: list[PropertyRecord]) -> PushResult:
        """Push the list unless it already matches what the remote holds."""
        if same_properties(self._properties, remote_records):
            self.cache.set_flag(PENDING_PUSH_KEY, False)
            return RemoteStatus.SYNCED, None, None
        return await self._push()

    def _mark_unsynced(self) -> None:
        if self.settings.storage_mode == "gist":
            self.cache.set_flag(PENDING_PUSH_KEY, True)

    # ==================== Sync ====================

    async def reconcile(self) -> StoreOutcome:
        """Merge the remote snapshot into the list and push back any difference.

        The cache is refreshed with the merged list whenever the remote
        could be read.
        """
        if not self.remote_enabled:
            return StoreOutcome(
                success=False,
                message="Remote store disabled or offline",
                remote=RemoteStatus.LOCAL_ONLY,
            )

        try:
            snapshot = await self.remote.fetch()
        except RemoteStoreError as e:
            return StoreOutcome(
                success=False,
                error=e.kind,
                message=self._record_remote_error(e),
                remote=RemoteStatus.FAILED,
            )

        merged = merge_properties(self._properties, snapshot.properties)
        self._properties = merged

        remote_status, error, message = await self._push_if_changed(snapshot.properties)
        if remote_status is RemoteStatus.FAILED:
            self._mark_unsynced()

        cached = self.cache.save_properties(self._properties)
        logger.info(f"Sync complete: {len(merged)} properties")
        return StoreOutcome(
            success=True,
            error=error,
            message=message,
            remote=remote_status,
            cached=cached,
        )

    async def close(self) -> None:
        await self.remote.close()

    # ==================== Helpers ====================

    def _index_of(self, property_id: str) -> Optional[int]:
        for i, record in enumerate(self._properties):
            if record.id == property_id:
                return i
        return None

    def _new_id(self) -> str:
        """Generate an id never used in this session."""
        while True:
            suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
            candidate = f"terreno_{int(time.time() * 1000)}_{suffix}"
            if candidate not in self._retired_ids and self._index_of(candidate) is None:
                return candidate

    def _normalise_images(self, images: list[str]) -> list[str]:
        if not images:
            images = self.settings.default_images[:1]
        return list(images)[: self.settings.max_images]

    @staticmethod
    def _next_timestamp(previous: datetime) -> datetime:
        """Current time, forced strictly past ``previous``."""
        now = utcnow()
        if now <= previous:
            return previous + timedelta(microseconds=1)
        return now

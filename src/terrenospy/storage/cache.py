"""SQLite-backed local cache for the property list.

The cache is the resource of last resort: it holds the last-known-good
snapshot of the property list so the store keeps working offline, plus
a few flags: the last remote auth error, the last credential error, and
whether the cache holds changes never pushed to the remote.

Values are plain strings under string keys, the same layout the public
site keeps in the browser's localStorage.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from ..models.outcome import ErrorKind
from ..models.property import PropertyRecord, isoformat_z, utcnow

logger = logging.getLogger(__name__)

# Default cache directory
DEFAULT_CACHE_DIR = Path.home() / ".terrenospy" / "cache"

CACHE_KEY = "terrenos_py_cache"
SYNC_KEY = "terrenos_py_last_sync"
AUTH_ERROR_KEY = "terrenos_py_gist_auth_error"
CREDENTIAL_ERROR_KEY = "terrenos_py_gist_credential_error"
# Set while the cache holds changes the remote has not received
PENDING_PUSH_KEY = "terrenos_py_pending_push"


class CacheUnavailable(Exception):
    """Raised when the cache database cannot be read or written."""

    kind = ErrorKind.CACHE_UNAVAILABLE


class LocalCache:
    """Key-value cache for the property list.

    Example:
        cache = LocalCache()

        cache.save_properties(records)
        cached = cache.load_properties()

        if cache.get_flag(AUTH_ERROR_KEY):
            print("Last remote call was rejected")
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        db_name: str = "terrenos.db",
    ):
        """Initialize the local cache.

        Args:
            cache_dir: Directory for the cache database.
                      Defaults to ~/.terrenospy/cache/
            db_name: Name of the SQLite database file
        """
        self.cache_dir = Path(cache_dir) if cache_dir else DEFAULT_CACHE_DIR
        self.db_path = self.cache_dir / db_name
        self._ready = False

    def _connect(self) -> sqlite3.Connection:
        """Open the database, creating the schema on first use."""
        try:
            if not self._ready:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path)
            if not self._ready:
                conn.execute(
                    "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                )
                conn.commit()
                self._ready = True
            return conn
        except (sqlite3.Error, OSError) as e:
            raise CacheUnavailable(f"Cannot open cache at {self.db_path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None.

        Raises:
            CacheUnavailable: If the database cannot be read
        """
        conn = self._connect()
        try:
            with conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cannot read {key}: {e}") from e
        finally:
            conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            CacheUnavailable: If the database cannot be written
        """
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
                )
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cannot write {key}: {e}") from e
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cannot delete {key}: {e}") from e
        finally:
            conn.close()

    def clear(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM kv")
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cannot clear cache: {e}") from e
        finally:
            conn.close()

    def load_properties(self) -> list[PropertyRecord]:
        """Load the cached property list.

        Returns:
            Cached records, or an empty list when there is no usable cache
        """
        try:
            raw = self.get(CACHE_KEY)
        except CacheUnavailable as e:
            logger.error(f"Error loading cache: {e}")
            return []
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Cached property list is corrupt: {e}")
            return []
        if not isinstance(data, list):
            logger.error("Cached property list is not a list")
            return []

        records = []
        for item in data:
            try:
                records.append(PropertyRecord.from_wire(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid cached property: {e.error_count()} errors")

        logger.info(f"{len(records)} properties loaded from cache")
        return records

    def save_properties(self, records: Sequence[PropertyRecord]) -> bool:
        """Write the property list and the last-sync timestamp.

        Returns:
            True if written, False if the cache is unavailable
        """
        payload = json.dumps([r.to_wire() for r in records], ensure_ascii=False)
        try:
            self.set(CACHE_KEY, payload)
            self.set(SYNC_KEY, isoformat_z(utcnow()))
        except CacheUnavailable as e:
            logger.error(f"Error saving cache: {e}")
            return False
        return True

    def last_sync(self) -> Optional[datetime]:
        """Timestamp of the last successful cache write."""
        try:
            raw = self.get(SYNC_KEY)
        except CacheUnavailable as e:
            logger.error(f"Error reading last sync: {e}")
            return None
        if not raw:
            return None
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None

    def get_flag(self, key: str) -> bool:
        try:
            return self.get(key) == "true"
        except CacheUnavailable as e:
            logger.error(f"Error reading flag {key}: {e}")
            return False

    def set_flag(self, key: str, value: bool) -> None:
        try:
            if value:
                self.set(key, "true")
            else:
                self.delete(key)
        except CacheUnavailable as e:
            logger.error(f"Error writing flag {key}: {e}")

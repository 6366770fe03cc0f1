"""Background reconciliation triggers.

Reconciliation runs on three triggers: a periodic timer while online, a
transition from offline to online, and an explicit request.

The scheduler does not detect connectivity itself. An embedding application
feeds its network events to set_online(); the CLI "watch" command feeds none,
so there a failed sync is simply retried on the next tick.
"""

import asyncio
import logging
from typing import Optional

from ..models.outcome import StoreOutcome
from .property_store import PropertyStore

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Drive PropertyStore.reconcile() from a timer and connectivity events.

    Example:
        scheduler = SyncScheduler(store)
        scheduler.start()
        ...
        await scheduler.set_online(False)
        await scheduler.set_online(True)  # triggers a sync
        await scheduler.stop()
    """

    def __init__(self, store: PropertyStore, interval: Optional[float] = None):
        """Initialize the scheduler.

        Args:
            store: Store to reconcile
            interval: Seconds between periodic syncs. Defaults to
                      settings.sync_interval_seconds (120)
        """
        self.store = store
        self.interval = interval if interval is not None else store.settings.sync_interval_seconds
        self.last_outcome: Optional[StoreOutcome] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic timer. Must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Sync timer started ({self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Sync timer stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.store.is_online:
                logger.debug("Offline; skipping periodic sync")
                continue
            try:
                await self.sync_now()
            except Exception as e:
                logger.error(f"Periodic sync failed: {e}")

    async def sync_now(self) -> StoreOutcome:
        """Reconcile immediately."""
        outcome = await self.store.reconcile()
        self.last_outcome = outcome
        return outcome

    async def set_online(self, online: bool) -> Optional[StoreOutcome]:
        """Feed a connectivity change; returning online triggers a sync."""
        if self.store.set_online(online):
            logger.info("Connection restored - syncing")
            return await self.sync_now()
        return None

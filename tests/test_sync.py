"""Tests for the sync scheduler."""

import asyncio

from terrenospy.models.outcome import RemoteStatus
from terrenospy.remote.base import NetworkUnavailable
from terrenospy.store import PropertyStore, SyncScheduler

from .conftest import InMemoryRemote, make_record


class TestConnectivity:
    """Test syncs triggered by connectivity changes."""

    def test_coming_online_triggers_sync(self, store: PropertyStore, remote: InMemoryRemote):
        async def scenario():
            scheduler = SyncScheduler(store)
            await scheduler.set_online(False)
            remote.records = [make_record("t1", title="Remoto")]
            return await scheduler.set_online(True)

        outcome = asyncio.run(scenario())

        assert outcome is not None
        assert outcome.success
        assert store.get_by_id("t1") is not None

    def test_going_offline_does_not_sync(self, store: PropertyStore, remote: InMemoryRemote):
        scheduler = SyncScheduler(store)

        assert asyncio.run(scheduler.set_online(False)) is None
        assert remote.fetch_calls == 0

    def test_staying_online_does_not_sync(self, store: PropertyStore, remote: InMemoryRemote):
        scheduler = SyncScheduler(store)

        assert asyncio.run(scheduler.set_online(True)) is None
        assert remote.fetch_calls == 0

    def test_writes_while_offline_pushed_on_return(self, store: PropertyStore, remote: InMemoryRemote):
        async def scenario():
            scheduler = SyncScheduler(store)
            await scheduler.set_online(False)
            created = await store.create({"title": "Lote A", "location": "Luque"})
            await scheduler.set_online(True)
            return created

        created = asyncio.run(scenario())

        assert created.remote is RemoteStatus.LOCAL_ONLY
        assert [r.id for r in remote.records] == [created.record.id]


class TestPeriodicSync:
    """Test the periodic timer."""

    def test_timer_reconciles(self, store: PropertyStore, remote: InMemoryRemote):
        async def scenario():
            scheduler = SyncScheduler(store, interval=0.01)
            scheduler.start()
            assert scheduler.running
            await asyncio.sleep(0.1)
            await scheduler.stop()
            return scheduler

        scheduler = asyncio.run(scenario())

        assert remote.fetch_calls >= 1
        assert scheduler.last_outcome is not None
        assert not scheduler.running

    def test_timer_skips_while_offline(self, store: PropertyStore, remote: InMemoryRemote):
        async def scenario():
            store.set_online(False)
            scheduler = SyncScheduler(store, interval=0.01)
            scheduler.start()
            await asyncio.sleep(0.05)
            await scheduler.stop()

        asyncio.run(scenario())

        assert remote.fetch_calls == 0

    def test_failed_sync_retried_next_tick(self, store: PropertyStore, remote: InMemoryRemote):
        """Without connectivity events, a failed sync is retried by the timer."""
        async def scenario():
            remote.error = NetworkUnavailable("memory", "offline")
            scheduler = SyncScheduler(store, interval=0.01)
            scheduler.start()
            await asyncio.sleep(0.05)
            failed = scheduler.last_outcome
            remote.error = None
            remote.records = [make_record("t1")]
            await asyncio.sleep(0.05)
            await scheduler.stop()
            return failed, scheduler.last_outcome

        failed, recovered = asyncio.run(scenario())

        assert failed is not None and not failed.success
        assert recovered.success
        assert store.get_by_id("t1") is not None
        assert store.is_online

    def test_default_interval(self, store: PropertyStore):
        assert SyncScheduler(store).interval == 120

    def test_stop_without_start(self, store: PropertyStore):
        asyncio.run(SyncScheduler(store).stop())

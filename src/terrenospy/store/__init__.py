"""Property store and its synchronisation logic.

Main Components:
    - PropertyStore: authoritative in-memory list with CRUD and search
    - merge_properties: remote-wins-by-id, newest-updated-at reconciliation
    - SyncScheduler: periodic and connectivity-triggered reconciliation

Example usage:
    from terrenospy.config import Settings
    from terrenospy.store import PropertyStore, SyncScheduler

    store = PropertyStore(Settings())
    await store.load()
    scheduler = SyncScheduler(store)
    scheduler.start()
"""

from .merge import merge_properties, same_properties
from .property_store import PropertyStore, RemoteAvailability
from .sync import SyncScheduler

__all__ = [
    "PropertyStore",
    "RemoteAvailability",
    "SyncScheduler",
    "merge_properties",
    "same_properties",
]

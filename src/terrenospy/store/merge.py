"""Reconciliation of the local property list with a remote snapshot.

Policy: remote wins by id, unless the local copy was updated strictly
later. Local records missing remotely are kept as unsynced creations.
Conflicts are decided on client clocks only, so two edits of the same
record made under clock skew can lose the earlier-stamped one.
"""

from typing import Iterable

from ..models.property import PropertyRecord


def merge_properties(
    local: Iterable[PropertyRecord],
    remote: Iterable[PropertyRecord],
) -> list[PropertyRecord]:
    """Merge local and remote lists.

    Args:
        local: Records held in this session
        remote: Records read from the remote store

    Returns:
        Merged records sorted by updated_at, newest first
    """
    merged: dict[str, PropertyRecord] = {record.id: record for record in remote}

    for record in local:
        current = merged.get(record.id)
        if current is None or record.updated_at > current.updated_at:
            merged[record.id] = record

    # sorted() is stable, so ties keep remote-then-local insertion order
    return sorted(merged.values(), key=lambda r: r.updated_at, reverse=True)


def same_properties(a: Iterable[PropertyRecord], b: Iterable[PropertyRecord]) -> bool:
    """Check whether two lists serialise identically, order included."""
    return [r.to_wire() for r in a] == [r.to_wire() for r in b]

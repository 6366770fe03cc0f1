"""Data models for Terrenos PY."""

from terrenospy.models.outcome import ErrorKind, RemoteStatus, StoreOutcome
from terrenospy.models.property import (
    EPOCH,
    PropertyDraft,
    PropertyPatch,
    PropertyRecord,
    PropertyStatus,
    isoformat_z,
    utcnow,
)

__all__ = [
    "EPOCH",
    "ErrorKind",
    "PropertyDraft",
    "PropertyPatch",
    "PropertyRecord",
    "PropertyStatus",
    "RemoteStatus",
    "StoreOutcome",
    "isoformat_z",
    "utcnow",
]

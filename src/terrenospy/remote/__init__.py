"""Remote stores mirroring the property list.

Main Components:
    - RemoteStore: Abstract base class for whole-document remote stores
    - GistClient: GitHub Gist implementation over httpx
    - RemoteStoreError and subclasses: failure taxonomy of remote calls
"""

from .base import (
    NetworkUnavailable,
    RemoteAuthFailure,
    RemoteMalformedResponse,
    RemoteNotFound,
    RemoteSnapshot,
    RemoteStore,
    RemoteStoreError,
)
from .gist import GistClient, decode_document, encode_document

__all__ = [
    "GistClient",
    "NetworkUnavailable",
    "RemoteAuthFailure",
    "RemoteMalformedResponse",
    "RemoteNotFound",
    "RemoteSnapshot",
    "RemoteStore",
    "RemoteStoreError",
    "decode_document",
    "encode_document",
]

from __future__ import annotations

from .storage import BlobStore, FileBlobStore, MemoryBlobStore
from .store import HistoryEntry, ResultStore, Settings, StoreSnapshot

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "HistoryEntry",
    "MemoryBlobStore",
    "ResultStore",
    "Settings",
    "StoreSnapshot",
]

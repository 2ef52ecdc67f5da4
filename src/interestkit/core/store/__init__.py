"""Snapshot document, storage adapters, lifecycle and bucket store."""

from __future__ import annotations

from .buckets import BucketStore
from .lifecycle import LifecycleState, SnapshotLifecycle
from .snapshot import Snapshot
from .storage import FileStorage, MemoryStorage, Storage

__all__ = [
    "BucketStore",
    "FileStorage",
    "LifecycleState",
    "MemoryStorage",
    "Snapshot",
    "SnapshotLifecycle",
    "Storage",
]

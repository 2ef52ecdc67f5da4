"""
Snapshot lifecycle: load, identity guard, persist, export, import, reset.

States
------
``UNINITIALIZED -> LOADED -> ACTIVE``; ``ACTIVE`` re-enters itself on every
persisted mutation, and an explicit reset or an identity mismatch at load time
lands in ``REINITIALIZED`` (which becomes ``ACTIVE`` on the next mutation).

Failure handling
----------------
Every step that touches the storage adapter returns a
:class:`~interestkit.core.result.Result`. Nothing raises past this class:

- read failure / malformed document -> fresh empty snapshot
- write failure -> write dropped, in-memory snapshot stays authoritative
- identity mismatch -> fresh empty snapshot stamped with the current identity
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, cast

from interestkit.core.result import FailureKind, Result, StoreFailure, fail, ok
from interestkit.core.settings import get_logger

from .snapshot import Snapshot
from .storage import Storage

Clock = Callable[[], int]
IdentityProvider = Callable[[], str]


class LifecycleState(str, Enum):
    """Where the snapshot is in its life."""

    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    ACTIVE = "active"
    REINITIALIZED = "reinitialized"


class SnapshotLifecycle:
    """Own the active :class:`Snapshot` and mirror it to a storage adapter.

    Parameters
    ----------
    storage : Storage
        Adapter holding the serialized snapshot under ``key``.
    key : str
        Persistence key.
    identity : IdentityProvider
        Returns the current context's fingerprint.
    clock : Clock
        Returns the current time in milliseconds.
    schema_version : int
        Version stamped on fresh snapshots.
    """

    __slots__ = (
        "_storage",
        "_key",
        "_identity",
        "_clock",
        "_schema_version",
        "_snap",
        "_state",
        "_log",
    )

    def __init__(
        self,
        storage: Storage,
        *,
        key: str,
        identity: IdentityProvider,
        clock: Clock,
        schema_version: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._storage = storage
        self._key = key
        self._identity = identity
        self._clock = clock
        self._schema_version = schema_version
        self._snap: Snapshot | None = None
        self._state = LifecycleState.UNINITIALIZED
        self._log = logger or get_logger("interestkit.store")

    # ------------------------------------------------------------ properties

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def snapshot(self) -> Snapshot:
        """The live snapshot, loading it on first access."""
        if self._snap is None:
            self.load()
        assert self._snap is not None
        return self._snap

    def now(self) -> int:
        return int(self._clock())

    def _fresh(self) -> Snapshot:
        return Snapshot.fresh(
            self._identity(), schema_version=self._schema_version, now=self.now()
        )

    # ------------------------------------------------------------------ load

    def _read(self) -> Result[Snapshot | None, StoreFailure]:
        """Fetch and validate the persisted document; ``Ok(None)`` if absent."""
        try:
            raw = self._storage.get(self._key)
        except Exception as e:
            return fail(FailureKind.STORAGE_READ, f"{type(e).__name__}: {e}")
        if not raw:
            return ok(None)
        if not isinstance(raw, str):
            return fail(FailureKind.STORAGE_READ, f"adapter returned {type(raw).__name__}")
        return cast(Result[Snapshot | None, StoreFailure], Snapshot.parse(raw))

    def _guard(self, snap: Snapshot) -> Result[Snapshot, StoreFailure]:
        """Reject a snapshot that belongs to a different context."""
        current = self._identity()
        if not snap.identity_fingerprint:
            snap.identity_fingerprint = current
            return ok(snap)
        if snap.identity_fingerprint != current:
            return fail(
                FailureKind.IDENTITY_MISMATCH,
                f"stored {snap.identity_fingerprint!r} != current {current!r}",
            )
        return ok(snap)

    def load(self) -> Snapshot:
        """Load the persisted snapshot, or start fresh. Never raises."""
        res = self._read()
        if res.is_err():
            failure = res.unwrap_err()
            self._log.warning(
                "Discarding persisted snapshot (%s): %s", failure.kind.value, failure.detail
            )
            self._snap = self._fresh()
            self._state = LifecycleState.LOADED
            return self._snap

        loaded = res.unwrap()
        if loaded is None:
            self._log.debug("No persisted snapshot under %r; starting empty", self._key)
            self._snap = self._fresh()
            self._state = LifecycleState.LOADED
            return self._snap

        guarded = self._guard(loaded)
        if guarded.is_err():
            self._log.info("Identity changed, resetting data: %s", guarded.unwrap_err().detail)
            self._snap = self._fresh()
            self._state = LifecycleState.REINITIALIZED
            return self._snap

        self._snap = guarded.unwrap()
        self._state = LifecycleState.LOADED
        self._log.debug("Loaded snapshot %r (%d buckets)", self._key, len(self._snap.buckets))
        return self._snap

    # --------------------------------------------------------------- persist

    def _write(self) -> Result[None, StoreFailure]:
        snap = self.snapshot
        snap.updated_at = max(snap.updated_at, self.now())
        try:
            self._storage.set(self._key, snap.to_json())
        except Exception as e:
            self._log.warning("Snapshot write dropped: %s: %s", type(e).__name__, e)
            return fail(FailureKind.STORAGE_WRITE, str(e))
        return ok(None)

    def commit(self) -> Result[None, StoreFailure]:
        """Persist after a mutation of the live snapshot."""
        res = self._write()
        self._state = LifecycleState.ACTIVE
        return res

    # ------------------------------------------------- export / import / reset

    def export(self) -> dict[str, Any]:
        """Deep copy of the live snapshot as a JSON-safe document."""
        return self.snapshot.to_document()

    def import_(self, doc: Any) -> Result[Snapshot, StoreFailure]:
        """Replace the live snapshot with ``doc`` if it carries a ``buckets`` map."""
        res = Snapshot.from_document(copy.deepcopy(doc))
        if res.is_err():
            self._log.warning("Import ignored: %s", res.unwrap_err().detail)
            return res
        snap = res.unwrap()
        if not snap.identity_fingerprint:
            snap.identity_fingerprint = self._identity()
        self._snap = snap
        self.commit()
        self._log.info("Imported snapshot with %d buckets", len(snap.buckets))
        return ok(snap)

    def reset(self) -> Snapshot:
        """Start over with an empty snapshot for the current identity."""
        self._snap = self._fresh()
        self._write()
        self._state = LifecycleState.REINITIALIZED
        self._log.info("Snapshot %r reset", self._key)
        return self._snap


__all__ = ["Clock", "IdentityProvider", "LifecycleState", "SnapshotLifecycle"]

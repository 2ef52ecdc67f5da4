"""
InterestEngine: the caller-owned facade over the aggregation core.

Each engine owns one snapshot, one storage adapter and its own listeners.
There is no module-level default instance; construct as many as you need::

    engine = InterestEngine(storage=MemoryStorage(), identity=lambda: "Recipes")
    engine.track(Interaction(action="click", type="recipe", key="pumpkin-soup"))
    engine.get_top_items(3)

Contract
--------
- Public operations never raise. Invalid input is a no-op, storage failures
  degrade to an empty snapshot (read) or a dropped write (write).
- Every mutating call persists synchronously and then notifies listeners
  exactly once with the full snapshot document.
- Calls are applied in program order. The engine is not thread-safe; the
  host serializes access.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from interestkit.core.decay import AffinityTracker, round2
from interestkit.core.recorder import CLICKS, EventRecorder, Interaction
from interestkit.core.query import QueryEngine, TopItem
from interestkit.core.settings import Settings, get_logger, load_settings
from interestkit.core.store.buckets import DEFAULT_TOP_N, BucketStore, to_number
from interestkit.core.store.lifecycle import (
    Clock,
    IdentityProvider,
    LifecycleState,
    SnapshotLifecycle,
)
from interestkit.core.store.snapshot import MetaRecord, Snapshot
from interestkit.core.store.storage import MemoryStorage, Storage

StateListener = Callable[[dict[str, Any]], None]
R = TypeVar("R")


def now_ms() -> int:
    """Wall-clock time in integer milliseconds."""
    return time.time_ns() // 1_000_000


def _never_raises(default: Any) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Log and swallow unexpected errors of a public operation, returning ``default``."""

    def decorate(fn: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(fn)
        def wrapper(self: InterestEngine, *args: Any, **kwargs: Any) -> R:
            try:
                return fn(self, *args, **kwargs)
            except Exception:
                self._log.exception("InterestEngine.%s failed", fn.__name__)
                return default() if callable(default) else default

        return wrapper

    return decorate


class InterestEngine:
    """Aggregate interest signals into buckets and rank them.

    Parameters
    ----------
    settings : Settings | None
        Configuration; defaults to :func:`load_settings`.
    storage : Storage | None
        Persistence adapter; defaults to a private :class:`MemoryStorage`.
    clock : Clock | None
        Millisecond time source; defaults to :func:`now_ms`.
    identity : IdentityProvider | None
        Returns the current context fingerprint; defaults to
        ``settings.identity``.
    on_change : StateListener | None
        Optional first listener, same as calling :meth:`subscribe`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage: Storage | None = None,
        clock: Clock | None = None,
        identity: IdentityProvider | None = None,
        on_change: StateListener | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.storage: Storage = storage if storage is not None else MemoryStorage()
        self._clock: Clock = clock or now_ms
        self._identity_provider = identity
        self._log = logger or get_logger("interestkit.engine")
        self._listeners: list[StateListener] = []
        if on_change is not None:
            self._listeners.append(on_change)

        self._lifecycle = SnapshotLifecycle(
            self.storage,
            key=self.settings.storage_key,
            identity=self._identity,
            clock=self._clock,
            schema_version=self.settings.schema_version,
            logger=get_logger("interestkit.store"),
        )
        self._store = BucketStore(self._lifecycle)
        self._affinity = AffinityTracker(
            self._store, self._clock, self.settings.affinity_half_life_ms
        )
        self._recorder = EventRecorder(self._store, self._affinity, self.settings, self._clock)
        self._query = QueryEngine(self._store, self._affinity, self._clock)

    # ------------------------------------------------------------- internals

    def _identity(self) -> str:
        if self._identity_provider is None:
            return self.settings.identity
        try:
            value = self._identity_provider()
        except Exception as e:
            self._log.warning("Identity provider failed (%s); using default", e)
            return self.settings.identity
        return str(value) if value else self.settings.identity

    def _notify(self) -> None:
        if not self._listeners:
            return
        doc = self._lifecycle.export()
        for listener in list(self._listeners):
            try:
                listener(doc)
            except Exception:
                self._log.warning("State listener %r raised", listener, exc_info=True)

    # ------------------------------------------------------------- listeners

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------- mutators

    @_never_raises(False)
    def record(
        self,
        bucket: str,
        key: str,
        weight: Any = 1,
        meta: Mapping[str, Any] | None = None,
    ) -> bool:
        """Add ``weight`` to ``key`` in ``bucket`` and merge ``meta`` into its record."""
        applied = self._recorder.record(bucket, key, weight, meta)
        self._notify()
        return applied

    @_never_raises(list)
    def record_tokens(self, bucket: str, text: str | None, weight: Any = 1) -> list[str]:
        """Tokenize ``text`` and increment each token in ``bucket``."""
        tokens = self._recorder.record_tokens(bucket, text, weight)
        self._notify()
        return tokens

    @_never_raises(list)
    def record_search(self, text: str | None, weight: Any = 1) -> list[str]:
        """Tokenize a search query into the search bucket."""
        tokens = self._recorder.record_search(text, weight)
        self._notify()
        return tokens

    @_never_raises(False)
    def track(self, event: Interaction | Mapping[str, Any]) -> bool:
        """Apply one classified interaction (weight, meta, clicks, affinity, links)."""
        if not isinstance(event, Interaction):
            try:
                event = Interaction.model_validate(event)
            except ValidationError as e:
                self._log.debug("Ignoring invalid interaction: %s", e)
                self._notify()
                return False
        applied = self._recorder.track(event)
        self._notify()
        return applied

    @_never_raises(0)
    def record_click(self, bucket: str, key: str) -> int:
        """Count a click on ``key`` without touching weight or affinity."""
        clicks = self._recorder.record_click(bucket, key)
        self._notify()
        return clicks

    @_never_raises(None)
    def apply_delta(self, bucket: str, key: str, delta: Any) -> float | None:
        """Add ``delta`` to the decayed affinity of ``key``."""
        affinity = self._affinity.apply_delta(bucket, key, delta)
        self._notify()
        return affinity

    @_never_raises(None)
    def set_value(self, bucket: str, key: str, value: Any) -> float | None:
        """Overwrite the raw weight of ``key``."""
        res = self._store.set_value(bucket, key, value)
        self._notify()
        return res.unwrap() if res.is_ok() else None

    @_never_raises(None)
    def merge_meta(self, bucket: str, key: str, partial: Mapping[str, Any]) -> MetaRecord | None:
        """Shallow-merge ``partial`` into the metadata of ``key``."""
        res = self._store.merge_meta(bucket, key, partial)
        self._notify()
        return res.unwrap() if res.is_ok() else None

    @_never_raises(None)
    def set_session_id(self, session_id: str | None) -> None:
        """Attach an external correlation id to the snapshot."""
        self._lifecycle.snapshot.session_id = session_id or None
        self._lifecycle.commit()
        self._notify()

    @_never_raises(False)
    def import_(self, doc: Any) -> bool:
        """Replace the snapshot with ``doc`` if it has a ``buckets`` mapping."""
        applied = self._lifecycle.import_(doc).is_ok()
        self._notify()
        return applied

    @_never_raises(None)
    def reset(self) -> None:
        """Discard all state and start an empty snapshot for the current identity."""
        self._lifecycle.reset()
        self._notify()

    # ------------------------------------------------------------------ reads

    def route(self, event: Interaction) -> tuple[str, float]:
        """The ``(bucket, weight)`` :meth:`track` would use for ``event``."""
        return self._recorder.resolve(event)

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def snapshot(self) -> Snapshot:
        """The live snapshot model (mutations through it bypass persistence)."""
        return self._lifecycle.snapshot

    @_never_raises(dict)
    def data(self) -> dict[str, Any]:
        """Current snapshot as a document."""
        return self._lifecycle.export()

    @_never_raises(dict)
    def export(self) -> dict[str, Any]:
        """Deep copy of the snapshot, safe to store or inspect."""
        return self._lifecycle.export()

    @_never_raises(dict)
    def get_meta(self, bucket: str, key: str) -> MetaRecord:
        return self._store.get_meta(bucket, key)

    @_never_raises(0)
    def get_click_count(self, bucket: str, key: str) -> int:
        return int(to_number(self._store.get_meta(bucket, key).get(CLICKS), 0.0))

    @_never_raises(0.0)
    def read_affinity(self, bucket: str, key: str, now: int | None = None) -> float:
        """Live (unrounded) affinity of ``key`` at ``now``; does not persist."""
        return self._affinity.read_affinity(bucket, key, now)

    @_never_raises(0.0)
    def get_affinity(self, bucket: str, key: str) -> float:
        """Live affinity of ``key`` rounded to two decimals."""
        return round2(self._affinity.read_affinity(bucket, key))

    @_never_raises(list)
    def get_top(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, float]]:
        return self._query.get_top(bucket, n)

    @_never_raises(list)
    def get_top_by_clicks(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, int]]:
        return self._query.get_top_by_clicks(bucket, n)

    @_never_raises(list)
    def get_top_by_affinity(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, float]]:
        return self._query.get_top_by_affinity(bucket, n)

    @_never_raises(list)
    def get_top_items(self, n: Any = DEFAULT_TOP_N) -> list[TopItem]:
        """Rank the items bucket by live affinity, then by last seen."""
        return self._query.get_top_items(self.settings.items_bucket, n)


__all__ = ["InterestEngine", "StateListener", "now_ms"]

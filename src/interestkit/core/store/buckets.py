"""
In-memory bucket store mirrored to the snapshot lifecycle.

This module implements the weight/metadata map that every other component
reads and writes:

- ``increment(bucket, key, weight)``: add to a running, non-decaying total.
- ``set_value(bucket, key, value)``: overwrite a total (non-additive override).
- ``merge_meta(bucket, key, partial)``: shallow, last-write-wins merge of typed fields.
- ``get_meta(bucket, key)`` / ``get_top(bucket, n)``: reads.

Design Goals
------------
- **Write-through**: every applied mutation is persisted immediately through
  :meth:`SnapshotLifecycle.commit`. There is no batching and no dirty flag.
- **Explicit results**: mutators return a :class:`Result`; invalid input
  yields ``Err(INPUT_INVALID)`` and leaves state untouched.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from interestkit.core.result import FailureKind, Result, StoreFailure, fail, ok

from .lifecycle import SnapshotLifecycle
from .snapshot import MetaRecord, validate_meta

DEFAULT_TOP_N = 5


def to_number(value: Any, fallback: float = 1.0) -> float:
    """Coerce ``value`` to a finite float, or return ``fallback``."""
    if value is None:
        return fallback
    try:
        x = float(value)
    except (TypeError, ValueError):
        return fallback
    return x if math.isfinite(x) else fallback


def coerce_n(n: Any, default: int = DEFAULT_TOP_N) -> int:
    """Normalize a top-N argument; anything but a finite positive number -> ``default``."""
    x = to_number(n, float(default))
    return int(x) if x > 0 else default


class BucketStore:
    """Bucket -> entity -> weight/metadata maps backed by a live snapshot."""

    __slots__ = ("_lifecycle",)

    def __init__(self, lifecycle: SnapshotLifecycle) -> None:
        self._lifecycle = lifecycle

    @property
    def lifecycle(self) -> SnapshotLifecycle:
        return self._lifecycle

    # ------------------------------------------------------------- mutations

    def increment(self, bucket: str, key: str, weight: Any = 1) -> Result[float, StoreFailure]:
        """Add ``weight`` (1 if not a finite number) to ``buckets[bucket][key]``.

        Returns
        -------
        Result[float, StoreFailure]
            ``Ok(new_total)`` or ``Err(INPUT_INVALID)`` for an empty bucket/key.
        """
        if not bucket or not key:
            return fail(FailureKind.INPUT_INVALID, "bucket and key are required")
        w = to_number(weight, 1.0)
        weights = self._lifecycle.snapshot.buckets.setdefault(bucket, {})
        total = weights.get(key, 0.0) + w
        weights[key] = total
        self._lifecycle.commit()
        return ok(total)

    def set_value(self, bucket: str, key: str, value: Any) -> Result[float, StoreFailure]:
        """Overwrite the raw weight of ``key`` instead of adding to it."""
        if not bucket or not key:
            return fail(FailureKind.INPUT_INVALID, "bucket and key are required")
        v = to_number(value, 0.0)
        self._lifecycle.snapshot.buckets.setdefault(bucket, {})[key] = v
        self._lifecycle.commit()
        return ok(v)

    def merge_meta(
        self, bucket: str, key: str, partial: Mapping[str, Any] | None
    ) -> Result[MetaRecord, StoreFailure]:
        """Shallow-merge ``partial`` into the metadata of ``key``.

        Sibling fields are never cleared; fields in ``partial`` win. A partial
        that is not a mapping of :data:`MetaValue` fields is rejected whole and
        nothing is written.
        """
        if not bucket or not key:
            return fail(FailureKind.INPUT_INVALID, "bucket and key are required")
        checked = validate_meta(partial)
        if checked.is_err():
            return checked
        by_bucket = self._lifecycle.snapshot.meta.setdefault(bucket, {})
        merged = {**by_bucket.get(key, {}), **checked.unwrap()}
        by_bucket[key] = merged
        self._lifecycle.commit()
        return ok(dict(merged))

    # ----------------------------------------------------------------- reads

    def get_meta(self, bucket: str, key: str) -> MetaRecord:
        """Return a copy of the metadata of ``key`` (empty if absent)."""
        return dict(self._lifecycle.snapshot.meta.get(bucket, {}).get(key, {}))

    def meta_items(self, bucket: str) -> list[tuple[str, MetaRecord]]:
        """Return ``(key, metadata)`` pairs of ``bucket`` in insertion order."""
        return list(self._lifecycle.snapshot.meta.get(bucket, {}).items())

    def get_top(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, float]]:
        """Return the ``n`` heaviest ``(key, weight)`` pairs of ``bucket``.

        Ties keep insertion order (``sorted`` is stable).
        """
        weights = self._lifecycle.snapshot.buckets.get(bucket, {})
        ranked = sorted(weights.items(), key=lambda kv: kv[1], reverse=True)
        return ranked[: coerce_n(n)]


__all__ = ["BucketStore", "DEFAULT_TOP_N", "coerce_n", "to_number"]

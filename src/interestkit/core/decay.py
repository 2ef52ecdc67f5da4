"""
Exponential-decay affinity scoring.

Model
-----
With half-life ``H`` (ms), a value ``v0`` stored at ``t0`` is worth, at ``t``::

    lam = ln(2) / H
    dt  = max(0, t - t0)
    v   = v0 * exp(-lam * dt)

A stored ``affinity`` is only valid at its ``affinityUpdatedAt`` instant, so
every read goes through :func:`project_decay`; nothing reads the raw field.
Writes add a delta to the projected value and round to two decimals.
"""

from __future__ import annotations

import math
from typing import Any

from interestkit.core.store.buckets import BucketStore, to_number
from interestkit.core.store.lifecycle import Clock

AFFINITY = "affinity"
AFFINITY_UPDATED_AT = "affinityUpdatedAt"
LAST_SEEN_AT = "lastSeenAt"


def round2(n: Any) -> float:
    """Round to two decimals, halves toward +inf (``0.125 -> 0.13``, ``-0.125 -> -0.12``)."""
    return math.floor(to_number(n, 0.0) * 100 + 0.5) / 100


def project_decay(value: float | None, last_ts: int | None, now: int, half_life_ms: float) -> float:
    """Project ``value`` stored at ``last_ts`` forward to ``now``.

    A missing or zero value or timestamp means the entity was never
    initialized; the value is returned unchanged (``0.0`` for ``None``).
    """
    if not value or not last_ts:
        return value or 0.0
    lam = math.log(2) / half_life_ms
    dt = max(0, now - last_ts)
    return value * math.exp(-lam * dt)


def _anchor(meta: dict[str, Any], default: int) -> int:
    # affinityUpdatedAt, else lastSeenAt, else "now" (no decay)
    ts = to_number(meta.get(AFFINITY_UPDATED_AT), 0.0) or to_number(meta.get(LAST_SEEN_AT), 0.0)
    return int(ts) if ts else default


class AffinityTracker:
    """Read and update decayed affinity stored in entity metadata.

    Parameters
    ----------
    store : BucketStore
        Where the ``affinity`` / ``affinityUpdatedAt`` fields live.
    clock : Clock
        Millisecond time source used for writes and default reads.
    half_life_ms : float
        Decay half-life; must be positive.
    """

    def __init__(self, store: BucketStore, clock: Clock, half_life_ms: float) -> None:
        if half_life_ms <= 0:
            raise ValueError("half_life_ms must be positive")
        self.store = store
        self.clock = clock
        self.half_life_ms = float(half_life_ms)

    def project(self, meta: dict[str, Any], now: int) -> float:
        """Live affinity of a metadata record at ``now`` (unrounded)."""
        value = to_number(meta.get(AFFINITY), 0.0)
        return project_decay(value, _anchor(meta, now), now, self.half_life_ms)

    def read_affinity(self, bucket: str, key: str, now: int | None = None) -> float:
        """Project the stored affinity of ``key`` to ``now``. Pure read."""
        t = int(self.clock()) if now is None else now
        return self.project(self.store.get_meta(bucket, key), t)

    def apply_delta(self, bucket: str, key: str, delta: Any) -> float | None:
        """Decay the stored affinity to now, add ``delta``, round, write back.

        Returns the new rounded affinity, or ``None`` if bucket/key is empty.
        """
        if not bucket or not key:
            return None
        t = int(self.clock())
        decayed = self.project(self.store.get_meta(bucket, key), t)
        affinity = round2(decayed + to_number(delta, 0.0))
        self.store.merge_meta(bucket, key, {AFFINITY: affinity, AFFINITY_UPDATED_AT: t})
        return affinity


__all__ = ["AffinityTracker", "project_decay", "round2"]

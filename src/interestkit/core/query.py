"""Ranked top-N reads over raw weight, clicks and live affinity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from interestkit.core.decay import AFFINITY_UPDATED_AT, LAST_SEEN_AT, AffinityTracker, round2
from interestkit.core.recorder import CLICKS
from interestkit.core.store.buckets import DEFAULT_TOP_N, BucketStore, coerce_n, to_number
from interestkit.core.store.lifecycle import Clock
from interestkit.core.store.snapshot import MetaRecord


@dataclass(frozen=True, slots=True)
class TopItem:
    """One ranked entry of :meth:`QueryEngine.get_top_items`.

    Attributes
    ----------
    key : str
        Entity key.
    affinity : float
        Live-projected affinity at query time, rounded to two decimals.
    last_seen_at : int
        ``lastSeenAt`` (or ``affinityUpdatedAt``, or 0) in milliseconds.
    meta : dict[str, Any]
        Copy of the full metadata record.
    """

    key: str
    affinity: float
    last_seen_at: int
    meta: MetaRecord = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "affinity": self.affinity,
            "lastSeenAt": self.last_seen_at,
            "meta": dict(self.meta),
        }


class QueryEngine:
    """Read-only rankings. Nothing here mutates or persists."""

    def __init__(self, store: BucketStore, affinity: AffinityTracker, clock: Clock) -> None:
        self.store = store
        self.affinity = affinity
        self.clock = clock

    def get_top(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, float]]:
        """Raw weight ranking; see :meth:`BucketStore.get_top`."""
        return self.store.get_top(bucket, n)

    def get_top_by_clicks(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, int]]:
        """Rank the metadata entries of ``bucket`` by click count (missing -> 0)."""
        counts = [
            (key, int(to_number(m.get(CLICKS), 0.0))) for key, m in self.store.meta_items(bucket)
        ]
        counts.sort(key=lambda kv: kv[1], reverse=True)
        return counts[: coerce_n(n)]

    def get_top_by_affinity(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[tuple[str, float]]:
        """Rank ``bucket`` by affinity projected to query time."""
        t = int(self.clock())
        scored = [
            (key, round2(self.affinity.project(m, t))) for key, m in self.store.meta_items(bucket)
        ]
        scored.sort(key=lambda kv: kv[1], reverse=True)
        return scored[: coerce_n(n)]

    def get_top_items(self, bucket: str, n: Any = DEFAULT_TOP_N) -> list[TopItem]:
        """Rank ``bucket`` by live affinity, ties broken by most recently seen."""
        t = int(self.clock())
        items: list[TopItem] = []
        for key, m in self.store.meta_items(bucket):
            last_seen = to_number(m.get(LAST_SEEN_AT), 0.0) or to_number(
                m.get(AFFINITY_UPDATED_AT), 0.0
            )
            items.append(
                TopItem(
                    key=key,
                    affinity=round2(self.affinity.project(m, t)),
                    last_seen_at=int(last_seen),
                    meta=dict(m),
                )
            )
        items.sort(key=lambda it: (it.affinity, it.last_seen_at), reverse=True)
        return items[: coerce_n(n)]


__all__ = ["QueryEngine", "TopItem"]

"""
Event recorder: turn one logical interest event into store mutations.

Three entry points of increasing scope:

- :meth:`EventRecorder.record`: one raw increment plus an optional
  metadata merge.
- :meth:`EventRecorder.record_tokens` / :meth:`EventRecorder.record_search`:
  free text split into tokens, one increment per surviving token.
- :meth:`EventRecorder.track`: a full, externally classified
  :class:`Interaction`: raw weight, metadata, click accounting, affinity and
  linked category/tag records.

Weight, clicks and affinity are separate signals. A click bumps all three;
a view or hover bumps weight and affinity only.

The recorder does not notify state listeners; the engine does that once per
public call.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from interestkit.core.decay import LAST_SEEN_AT, AffinityTracker
from interestkit.core.settings import Settings
from interestkit.core.store.buckets import BucketStore, to_number
from interestkit.core.store.lifecycle import Clock
from interestkit.core.store.snapshot import MetaValue, validate_meta
from interestkit.core.tokenize import tokenize


CLICKS = "clicks"
LAST_CLICK_AT = "lastClickAt"


class Interaction(BaseModel):
    """A single user interaction, already classified by the host.

    Attributes
    ----------
    action : str
        What happened: ``click``, ``view``, ``hover``, ``change``, ``input``
        or ``submit``.
    type : str
        Entity type label (``recipe``, ``video``, ``search``...); selects the
        bucket through the routing table and the default weight.
    key : str
        Entity key. For ``type == "search"`` this is the raw query text.
    bucket : str | None
        Explicit bucket, overriding the routing table.
    weight : float | None
        Explicit weight, overriding the default weight table.
    meta : dict[str, MetaValue]
        Typed caller attributes (title, genre...), merged into metadata.
    category : str | None
        Linked category, recorded as its own entity.
    tags : list[str]
        Linked tags, each recorded as its own entity.
    """

    action: str = "click"
    type: str = ""
    key: str
    bucket: str | None = None
    weight: float | None = None
    meta: dict[str, MetaValue] = Field(default_factory=dict)
    category: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("action", "type")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("tags")
    @classmethod
    def _drop_blank_tags(cls, v: list[str]) -> list[str]:
        return [t.strip() for t in v if t and t.strip()]


def default_weight(action: str, entity_type: str) -> float:
    """Weight used when an interaction carries none."""
    if entity_type == "recipe" and action == "click":
        return 3.0
    if entity_type == "recipe" and action == "view":
        return 2.0
    if entity_type == "video" and action == "click":
        return 2.0
    if action == "input":
        return 0.5
    return 1.0


class EventRecorder:
    """Validate and apply interest events against a :class:`BucketStore`."""

    def __init__(
        self,
        store: BucketStore,
        affinity: AffinityTracker,
        settings: Settings,
        clock: Clock,
    ) -> None:
        self.store = store
        self.affinity = affinity
        self.settings = settings
        self.clock = clock

    # ------------------------------------------------------------ primitives

    def record(
        self,
        bucket: str,
        key: str,
        weight: Any = 1,
        meta: Mapping[str, Any] | None = None,
    ) -> bool:
        """Increment ``key`` and merge ``meta``.

        Returns False, changing nothing, on an empty bucket/key or on ``meta``
        that is not a mapping of :data:`MetaValue` fields.
        """
        if not bucket or not key:
            return False
        if meta is not None and validate_meta(meta).is_err():
            return False
        self.store.increment(bucket, key, weight)
        if meta is not None:
            self.store.merge_meta(bucket, key, meta)
        return True

    def record_tokens(self, bucket: str, text: str | None, weight: Any = 1) -> list[str]:
        """Increment every token of ``text`` in ``bucket``; returns the tokens."""
        if not bucket:
            return []
        tokens = tokenize(text, self.settings.token_stop_words)
        for tok in tokens:
            self.store.increment(bucket, tok, weight)
        return tokens

    def record_search(self, text: str | None, weight: Any = 1) -> list[str]:
        """`record_tokens` against the bucket routed for ``search``."""
        return self.record_tokens(self.settings.bucket_for("search"), text, weight)

    def record_click(self, bucket: str, key: str) -> int:
        """Count one click on ``key``; independent of weight and affinity."""
        if not bucket or not key:
            return 0
        clicks = int(to_number(self.store.get_meta(bucket, key).get(CLICKS), 0.0)) + 1
        self.store.merge_meta(bucket, key, {CLICKS: clicks, LAST_CLICK_AT: int(self.clock())})
        return clicks

    # ----------------------------------------------------------- interaction

    def resolve(self, event: Interaction) -> tuple[str, float]:
        """Return the ``(bucket, weight)`` an interaction will be recorded with."""
        bucket = event.bucket or self.settings.bucket_for(event.type)
        weight = to_number(event.weight, default_weight(event.action, event.type))
        return bucket, weight

    def track(self, event: Interaction) -> bool:
        """Apply a full interaction. Returns False if nothing was recorded."""
        bucket, weight = self.resolve(event)

        if event.type == "search":
            return bool(self.record_search(event.key, weight))

        key = event.key.strip()
        if not key:
            return False

        meta: dict[str, Any] = dict(event.meta)
        meta.update(event=event.action, type=event.type)
        meta[LAST_SEEN_AT] = int(self.clock())
        self.record(bucket, key, weight, meta)

        if event.action == "click":
            self.record_click(bucket, key)

        self.affinity.apply_delta(bucket, key, weight)

        via = {"via": event.type}
        if event.category:
            self.record(self.settings.bucket_for("category"), event.category, 1, via)
        for tag in event.tags:
            self.record(self.settings.bucket_for("tag"), tag, 1, via)
        return True


__all__ = ["EventRecorder", "Interaction", "MetaValue", "default_weight"]

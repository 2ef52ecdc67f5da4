"""Unit tests for the write-through bucket store."""

from __future__ import annotations

import json
import math

from interestkit.core.result import FailureKind
from interestkit.core.store.buckets import BucketStore, coerce_n
from interestkit.core.store.storage import MemoryStorage

STORAGE_KEY = "interestkit:test"


def _persisted(storage: MemoryStorage) -> dict:
    raw = storage.get(STORAGE_KEY)
    assert raw is not None
    return json.loads(raw)


def test_increment_accumulates_sum(store: BucketStore) -> None:
    """The stored total is the arithmetic sum of every applied weight."""
    for w in (1, 2.5, 0.5, 3):
        store.increment("items", "soup", w)
    store.increment("items", "salad", 2)

    top = dict(store.get_top("items", 100))
    assert top == {"soup": 7.0, "salad": 2.0}


def test_increment_defaults_non_finite_weights_to_one(store: BucketStore) -> None:
    """NaN, infinities, None and junk all count as a weight of 1."""
    weights = (float("nan"), math.inf, None, "abc")
    totals = [store.increment("items", "k", w).unwrap() for w in weights]
    assert totals == [1.0, 2.0, 3.0, 4.0]
    assert store.get_top("items") == [("k", 4.0)]


def test_increment_with_empty_key_is_noop(store: BucketStore, storage: MemoryStorage) -> None:
    """Nothing changes, in memory or in storage, for an empty bucket or key."""
    store.increment("items", "soup", 2)
    before = storage.get(STORAGE_KEY)
    before_buckets = json.dumps(store.lifecycle.snapshot.buckets)

    res = store.increment("items", "", 5)
    res2 = store.increment("", "soup", 5)

    assert res.is_err() and res.unwrap_err().kind is FailureKind.INPUT_INVALID
    assert res2.is_err()
    assert storage.get(STORAGE_KEY) == before
    assert json.dumps(store.lifecycle.snapshot.buckets) == before_buckets


def test_every_mutation_is_persisted(store: BucketStore, storage: MemoryStorage) -> None:
    """Storage mirrors the in-memory snapshot after each call."""
    store.increment("items", "soup", 2)
    assert _persisted(storage)["buckets"] == {"items": {"soup": 2.0}}

    store.merge_meta("items", "soup", {"title": "Soup"})
    assert _persisted(storage)["meta"] == {"items": {"soup": {"title": "Soup"}}}


def test_set_value_overwrites(store: BucketStore) -> None:
    """`set_value` replaces the running total instead of adding to it."""
    store.increment("items", "soup", 5)
    store.set_value("items", "soup", 1.5)
    assert store.get_top("items") == [("soup", 1.5)]
    assert store.set_value("items", "", 3).is_err()


def test_merge_meta_is_shallow_last_write_wins(store: BucketStore) -> None:
    """Merging one field never clears its siblings."""
    store.merge_meta("items", "soup", {"title": "Soup", "clicks": 1, "tags": ["a"]})
    merged = store.merge_meta("items", "soup", {"clicks": 2}).unwrap()

    assert merged == {"title": "Soup", "clicks": 2, "tags": ["a"]}
    assert store.get_meta("items", "soup") == merged


def test_merge_meta_rejects_missing_partial(store: BucketStore, storage: MemoryStorage) -> None:
    """`None` or a non-mapping partial is ignored without persisting."""
    assert store.merge_meta("items", "soup", None).is_err()
    assert store.merge_meta("items", "soup", ["nope"]).is_err()  # type: ignore[arg-type]
    assert storage.get(STORAGE_KEY) is None


def test_merge_meta_rejects_unsupported_values(
    store: BucketStore, storage: MemoryStorage
) -> None:
    """Values outside str/number/bool/list[str] reject the whole partial untouched."""
    for partial in ({"obj": object()}, {"n": None}, {"nested": {"a": 1}}, {"tags": ["a", 1]}):
        res = store.merge_meta("items", "soup", {"title": "Soup", **partial})
        assert res.is_err() and res.unwrap_err().kind is FailureKind.INPUT_INVALID

    assert storage.get(STORAGE_KEY) is None
    assert store.lifecycle.snapshot.meta == {}


def test_merge_meta_keeps_value_types(store: BucketStore) -> None:
    """Booleans stay booleans and numbers stay numbers."""
    merged = store.merge_meta("items", "soup", {"fav": True, "clicks": 3, "score": 0.5}).unwrap()
    assert merged == {"fav": True, "clicks": 3, "score": 0.5}
    assert merged["fav"] is True
    assert isinstance(merged["clicks"], int) and not isinstance(merged["clicks"], bool)


def test_get_meta_absent_and_copy(store: BucketStore) -> None:
    """Absent metadata reads as {}; returned records are copies."""
    assert store.get_meta("nope", "nothing") == {}
    store.merge_meta("items", "soup", {"title": "Soup"})
    got = store.get_meta("items", "soup")
    got["title"] = "changed"
    assert store.get_meta("items", "soup")["title"] == "Soup"


def test_get_top_ties_keep_insertion_order(store: BucketStore) -> None:
    """Equal weights rank in the order the keys were first inserted."""
    for key, w in (("a", 2), ("b", 3), ("c", 2), ("d", 3)):
        store.increment("items", key, w)

    assert [k for k, _ in store.get_top("items")] == ["b", "d", "a", "c"]
    assert store.get_top("items", 2) == [("b", 3.0), ("d", 3.0)]
    assert store.get_top("missing") == []


def test_coerce_n_defaults_to_five() -> None:
    """Anything but a finite positive number falls back to 5."""
    assert coerce_n(None) == 5
    assert coerce_n("x") == 5
    assert coerce_n(0) == 5
    assert coerce_n(-3) == 5
    assert coerce_n(float("inf")) == 5
    assert coerce_n(float("nan")) == 5
    assert coerce_n(2) == 2
    assert coerce_n("3") == 3
    assert coerce_n(2.9) == 2

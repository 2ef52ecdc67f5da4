"""Tests for event recording: raw increments, tokens, clicks and interactions."""

from __future__ import annotations

from typing import Any

import pytest

from interestkit.core.recorder import Interaction, default_weight
from interestkit.engine import InterestEngine

T0 = 1_700_000_000_000


def test_record_increments_and_merges_meta(engine: InterestEngine) -> None:
    """`record` adds the weight and shallow-merges the metadata."""
    assert engine.record("items", "soup", 2, {"title": "Soup"})
    assert engine.record("items", "soup", 1.5, {"category": "Soups"})

    assert engine.get_top("items") == [("soup", 3.5)]
    assert engine.get_meta("items", "soup") == {"title": "Soup", "category": "Soups"}


def test_record_without_meta_leaves_meta_absent(engine: InterestEngine) -> None:
    """Weight and metadata are independent maps."""
    engine.record("items", "soup")
    assert engine.get_top("items") == [("soup", 1.0)]
    assert engine.data()["meta"] == {}


@pytest.mark.parametrize("bucket,key", [("", "soup"), ("items", ""), ("", "")])
def test_record_rejects_empty_bucket_or_key(
    engine: InterestEngine, bucket: str, key: str
) -> None:
    assert engine.record(bucket, key, 5, {"title": "x"}) is False
    assert engine.data()["buckets"] == {}
    assert engine.data()["meta"] == {}


def test_record_tokens_counts_each_occurrence(engine: InterestEngine) -> None:
    """Duplicate tokens in one call increment independently."""
    tokens = engine.record_tokens("queries", "Soup, soup and more SOUP", 2)
    assert tokens == ["soup", "soup", "more", "soup"]
    assert engine.get_top("queries") == [("soup", 6.0), ("more", 2.0)]


def test_record_search_uses_search_bucket(engine: InterestEngine) -> None:
    """Search text lands in the bucket routed for 'search'."""
    assert engine.record_search("It is How to Make a Soup") == ["soup"]
    assert engine.get_top("items") == [("soup", 1.0)]


def test_record_click_is_independent_of_weight(engine: InterestEngine, clock: Any) -> None:
    """Clicks are counted in metadata only."""
    engine.record("items", "soup", 4)
    assert engine.record_click("items", "soup") == 1
    clock.advance(1000)
    assert engine.record_click("items", "soup") == 2

    meta = engine.get_meta("items", "soup")
    assert meta["clicks"] == 2
    assert meta["lastClickAt"] == T0 + 1000
    assert "affinity" not in meta
    assert engine.get_top("items") == [("soup", 4.0)]
    assert engine.get_click_count("items", "soup") == 2
    assert engine.get_click_count("items", "ghost") == 0


def test_default_weight_table() -> None:
    assert default_weight("click", "recipe") == 3.0
    assert default_weight("view", "recipe") == 2.0
    assert default_weight("click", "video") == 2.0
    assert default_weight("input", "diet") == 0.5
    assert default_weight("hover", "recipe") == 1.0
    assert default_weight("click", "game") == 1.0


def test_track_click_updates_all_three_signals(engine: InterestEngine) -> None:
    """One click feeds weight, click count and affinity separately."""
    event = Interaction(action="click", type="Recipe", key="pumpkin-soup", meta={"title": "PS"})
    assert engine.track(event)

    assert engine.get_top("items") == [("pumpkin-soup", 3.0)]
    meta = engine.get_meta("items", "pumpkin-soup")
    assert meta == {
        "title": "PS",
        "event": "click",
        "type": "recipe",
        "lastSeenAt": T0,
        "clicks": 1,
        "lastClickAt": T0,
        "affinity": 3.0,
        "affinityUpdatedAt": T0,
    }


def test_track_view_feeds_affinity_but_not_clicks(engine: InterestEngine) -> None:
    engine.track(Interaction(action="view", type="recipe", key="soup"))
    meta = engine.get_meta("items", "soup")
    assert engine.get_top("items") == [("soup", 2.0)]
    assert meta["affinity"] == 2.0
    assert "clicks" not in meta


def test_track_fans_out_linked_records(engine: InterestEngine) -> None:
    """Category and tags become ordinary records with weight 1 and a `via` marker."""
    engine.track(
        Interaction(
            action="click",
            type="recipe",
            key="pumpkin-soup",
            category="Soups",
            tags=["Fall", " ", "One-Pot"],
        )
    )

    weights = dict(engine.get_top("items", 10))
    assert weights == {"pumpkin-soup": 3.0, "Soups": 1.0, "Fall": 1.0, "One-Pot": 1.0}
    assert engine.get_meta("items", "Soups") == {"via": "recipe"}
    assert engine.get_meta("items", "Fall") == {"via": "recipe"}


def test_track_routes_unknown_types_to_default_bucket(engine: InterestEngine) -> None:
    engine.track(Interaction(action="hover", type="podcast", key="ep-1"))
    assert engine.get_top("actions") == [("ep-1", 1.0)]
    assert engine.get_top("items") == []


def test_track_explicit_bucket_and_weight_win(engine: InterestEngine) -> None:
    engine.track(Interaction(action="click", type="recipe", key="soup", bucket="fav", weight=7))
    assert engine.get_top("fav") == [("soup", 7.0)]
    assert engine.get_meta("fav", "soup")["affinity"] == 7.0


def test_track_search_tokenizes_query(engine: InterestEngine) -> None:
    """Search interactions are routed through search tokenization only."""
    assert engine.track(Interaction(action="input", type="search", key="Spicy ramen, spicy!"))
    assert engine.get_top("items") == [("spicy", 1.0), ("ramen", 0.5)]
    assert engine.data()["meta"] == {}


def test_track_accepts_mappings(engine: InterestEngine) -> None:
    """A plain dict is validated into an Interaction."""
    assert engine.track({"action": "click", "type": "video", "key": "knife-skills"})
    assert engine.get_top("items") == [("knife-skills", 2.0)]


def test_track_ignores_invalid_input(engine: InterestEngine) -> None:
    """Missing keys or blank keys are silently ignored."""
    assert engine.track({"action": "click", "type": "video"}) is False
    assert engine.track(Interaction(action="click", type="video", key="   ")) is False
    assert engine.data()["buckets"] == {}

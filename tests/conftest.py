"""Shared fixtures: a controllable clock, in-memory storage and engine factories."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from interestkit.core.decay import AffinityTracker
from interestkit.core.settings import Settings
from interestkit.core.store.buckets import BucketStore
from interestkit.core.store.lifecycle import SnapshotLifecycle
from interestkit.core.store.storage import MemoryStorage
from interestkit.engine import InterestEngine

T0 = 1_700_000_000_000
HALF_LIFE = 7 * 24 * 60 * 60 * 1000
STORAGE_KEY = "interestkit:test"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = T0) -> None:
        self.t = start

    def __call__(self) -> int:
        return self.t

    def advance(self, ms: int) -> int:
        self.t += ms
        return self.t


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def test_settings() -> Settings:
    """Settings pinned to known values regardless of the environment."""
    return Settings(
        storage_key=STORAGE_KEY,
        affinity_half_life_ms=HALF_LIFE,
        identity="Test Site",
    )


@pytest.fixture
def lifecycle(storage: MemoryStorage, clock: FakeClock) -> SnapshotLifecycle:
    return SnapshotLifecycle(storage, key=STORAGE_KEY, identity=lambda: "Test Site", clock=clock)


@pytest.fixture
def store(lifecycle: SnapshotLifecycle) -> BucketStore:
    return BucketStore(lifecycle)


@pytest.fixture
def tracker(store: BucketStore, clock: FakeClock) -> AffinityTracker:
    return AffinityTracker(store, clock, HALF_LIFE)


@pytest.fixture
def make_engine(
    storage: MemoryStorage, clock: FakeClock, test_settings: Settings
) -> Callable[..., InterestEngine]:
    """Factory for engines sharing the fixture clock (and, by default, storage)."""

    def _make(**overrides: Any) -> InterestEngine:
        kwargs: dict[str, Any] = {
            "storage": storage,
            "clock": clock,
            "identity": lambda: "Test Site",
        }
        kwargs.update(overrides)
        settings = kwargs.pop("settings", test_settings)
        return InterestEngine(settings, **kwargs)

    return _make


@pytest.fixture
def engine(make_engine: Callable[..., InterestEngine]) -> InterestEngine:
    return make_engine()

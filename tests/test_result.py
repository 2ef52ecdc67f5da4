"""Unit tests for the Result utilities and the store failure taxonomy."""

from __future__ import annotations

import pytest

from interestkit.core.result import (
    Err,
    FailureKind,
    Ok,
    Result,
    StoreFailure,
    err,
    fail,
    ok,
)


def test_ok_map_and_flat_map() -> None:
    """`Ok` should map/flat_map and keep values typed."""
    r: Result[int, str] = ok(10)
    r2 = r.map(lambda x: x + 5).flat_map(lambda x: ok(x * 2))
    assert r2.is_ok() and r2.unwrap() == 30


def test_err_propagates_through_combinators() -> None:
    """`Err` should pass through map/flat_map untouched."""
    r: Result[int, str] = err("boom")
    assert r.is_err()
    assert r.map(lambda x: x + 1).unwrap_err() == "boom"
    assert r.flat_map(lambda x: ok(x)).is_err()


def test_unwrap_variants() -> None:
    """`unwrap` raises on Err, `get_or` falls back, `unwrap_err` raises on Ok."""
    assert ok("x").unwrap() == "x"
    assert err("e").get_or("fallback") == "fallback"
    assert ok(3).get_or(7) == 3
    with pytest.raises(RuntimeError):
        err("e").unwrap()
    with pytest.raises(RuntimeError):
        ok(1).unwrap_err()


def test_fail_builds_classified_error() -> None:
    """`fail` wraps a StoreFailure with the given kind and detail."""
    r: Result[int, StoreFailure] = fail(FailureKind.STORAGE_WRITE, "disk full")
    assert isinstance(r, Err)
    failure = r.unwrap_err()
    assert failure == StoreFailure(FailureKind.STORAGE_WRITE, "disk full")
    assert failure.kind.value == "storage_write"


def test_variants_are_frozen_values() -> None:
    """Results compare by value."""
    assert Ok(1) == Ok(1)
    assert Err("a") != Err("b")


def test_result_base_is_abstract() -> None:
    """Only the `Ok` and `Err` variants can be constructed."""
    with pytest.raises(TypeError):
        Result()  # type: ignore[abstract]

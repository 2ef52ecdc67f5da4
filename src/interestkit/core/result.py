"""Typed Result container and the failure taxonomy of the snapshot store.

Motivation
----------
Storage adapters are allowed to throw, return garbage, or disappear between
calls. The lifecycle never lets that escape to a caller; instead, every step
that can fail returns a `Result[T, StoreFailure]` and the public engine turns
each `Err` into its documented safe default (fresh snapshot, dropped write,
or no-op).

This module provides:
- `Ok(value)` / `Err(error)` variants with `map`, `flat_map`, `unwrap`,
  `unwrap_err` and `get_or`;
- `FailureKind` / `StoreFailure`, the classified error payload.

Example
-------
>>> from interestkit.core.result import ok, err, Result
>>> def parse_weight(x: str) -> Result[float, str]:
...     return ok(float(x)) if x.replace(".", "", 1).isdigit() else err("not a number")
>>> ok("2.5").flat_map(parse_weight).unwrap()
2.5
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class Result(ABC, Generic[T, E]):
    """Sum type representing either success (`Ok[T]`) or failure (`Err[E]`).

    The base class only declares the interface; each variant implements every
    method for itself, so there is no runtime type dispatch and the base
    cannot be instantiated.
    """

    # ----- Introspection -----------------------------------------------------
    @abstractmethod
    def is_ok(self) -> bool:
        """Return ``True`` if this is an :class:`Ok` value."""

    def is_err(self) -> bool:
        """Return ``True`` if this is an :class:`Err` value."""
        return not self.is_ok()

    # ----- Unwraps -----------------------------------------------------------
    @abstractmethod
    def unwrap(self) -> T:
        """Return the success value; raise ``RuntimeError`` on ``Err``."""

    @abstractmethod
    def unwrap_err(self) -> E:
        """Return the error payload; raise ``RuntimeError`` on ``Ok``."""

    @abstractmethod
    def get_or(self, default: T) -> T:
        """Return the success value, or ``default`` if this is ``Err``."""

    # ----- Combinators -------------------------------------------------------
    @abstractmethod
    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        """Apply ``fn`` to the success value; propagate an error unchanged."""

    @abstractmethod
    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain a computation that itself returns a :class:`Result`."""


@dataclass(frozen=True)
class Ok(Result[T, E]):
    """Successful result wrapping a value of type ``T``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> E:
        raise RuntimeError(f"unwrap_err() called on {self!r}")

    def get_or(self, default: T) -> T:
        return self.value

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        return Ok(fn(self.value))

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return fn(self.value)


@dataclass(frozen=True)
class Err(Result[T, E]):
    """Failed result wrapping an error payload of type ``E``."""

    error: E

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> T:
        raise RuntimeError(f"unwrap() called on {self!r}")

    def unwrap_err(self) -> E:
        return self.error

    def get_or(self, default: T) -> T:
        return default

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        return Err(self.error)

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return Err(self.error)


def ok(value: T) -> Result[T, E]:
    """Construct :class:`Ok` typed as the base :class:`Result`."""
    return Ok(value)


def err(error: E) -> Result[T, E]:
    """Construct :class:`Err` typed as the base :class:`Result`."""
    return Err(error)


# ----- Failure taxonomy --------------------------------------------------------


class FailureKind(str, Enum):
    """Classification of everything that can go wrong inside the store."""

    INPUT_INVALID = "input_invalid"
    STORAGE_READ = "storage_read"
    STORAGE_WRITE = "storage_write"
    IDENTITY_MISMATCH = "identity_mismatch"


@dataclass(frozen=True, slots=True)
class StoreFailure:
    """Error payload carried by ``Err`` results of the store layer.

    Attributes
    ----------
    kind : FailureKind
        Which branch of the taxonomy this failure belongs to.
    detail : str
        Human-readable description, used for logging only.
    """

    kind: FailureKind
    detail: str = ""


def fail(kind: FailureKind, detail: str = "") -> Result[T, StoreFailure]:
    """Shorthand for ``err(StoreFailure(kind, detail))``."""
    return Err(StoreFailure(kind, detail))


__all__ = [
    "Err",
    "FailureKind",
    "Ok",
    "Result",
    "StoreFailure",
    "err",
    "fail",
    "ok",
]

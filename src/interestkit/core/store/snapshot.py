"""
Snapshot document definition.

The snapshot is the entire persisted state of one engine: raw bucket weights,
per-entity metadata, and the identity/session stamps. The same JSON document
is used for persistence, `export()` and `import_()`.

Wire format
-----------
Keys are camelCase on the wire (``schemaVersion``, ``updatedAt``,
``identityFingerprint``, ``sessionId``) and snake_case in Python. Documents
written by the legacy browser kit (``version`` / ``siteTitle``) are accepted
on read and always written back in the current shape.

Design Notes
------------
- ``buckets`` is required: a document without a ``buckets`` mapping is not a
  snapshot and fails validation.
- Everything below the top level is cleaned rather than rejected: a weight
  that is not a finite number, or a metadata entry that is not an object, is
  dropped and the rest of the document is kept.
- Bucket and meta maps are plain dicts, so insertion order is preserved and
  ranking ties stay stable across a save/load cycle.
- New metadata is checked against :data:`MetaValue` by :func:`validate_meta`
  before it reaches a snapshot; values already persisted are kept as-is.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from interestkit.core.result import FailureKind, Result, StoreFailure, fail, ok

MetaValue = str | int | float | bool | list[str]
MetaRecord = dict[str, Any]

_META_FIELDS: TypeAdapter[dict[str, MetaValue]] = TypeAdapter(dict[str, MetaValue])


def validate_meta(partial: Any) -> Result[MetaRecord, StoreFailure]:
    """Check a metadata update: string keys, values of type :data:`MetaValue`.

    Returns
    -------
    Result[MetaRecord, StoreFailure]
        ``Ok(copy)`` of the validated fields, or ``Err(INPUT_INVALID)``.
    """
    if not isinstance(partial, Mapping):
        return fail(FailureKind.INPUT_INVALID, "metadata must be a mapping")
    try:
        return ok(dict(_META_FIELDS.validate_python(dict(partial))))
    except ValidationError as e:
        detail = f"{e.error_count()} unsupported metadata value(s)"
        return fail(FailureKind.INPUT_INVALID, detail)


def _is_weight(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


class Snapshot(BaseModel):
    """Complete aggregate state at a point in time.

    Attributes
    ----------
    schema_version : int
        Document schema version, constant for a given engine version.
    updated_at : int
        Millisecond timestamp refreshed on every persisted mutation.
    buckets : dict[str, dict[str, float]]
        bucket -> entity key -> accumulated, non-decaying weight.
    meta : dict[str, dict[str, MetaRecord]]
        bucket -> entity key -> metadata record (clicks, affinity, ...).
    identity_fingerprint : str | None
        Identity of the owning context; guards against storage reuse.
    session_id : str | None
        Optional external correlation id.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    schema_version: int = Field(
        default=1,
        alias="schemaVersion",
        validation_alias=AliasChoices("schemaVersion", "version", "schema_version"),
    )
    updated_at: int = Field(
        default=0,
        alias="updatedAt",
        validation_alias=AliasChoices("updatedAt", "updated_at"),
    )
    buckets: dict[str, dict[str, float]]
    meta: dict[str, dict[str, MetaRecord]] = Field(default_factory=dict)
    identity_fingerprint: str | None = Field(
        default=None,
        alias="identityFingerprint",
        validation_alias=AliasChoices("identityFingerprint", "siteTitle", "identity_fingerprint"),
    )
    session_id: str | None = Field(
        default=None,
        alias="sessionId",
        validation_alias=AliasChoices("sessionId", "session_id"),
    )

    @field_validator("buckets", mode="before")
    @classmethod
    def _drop_bad_weights(cls, v: Any) -> Any:
        """Keep only finite numeric weights; a non-object bucket is dropped."""
        if not isinstance(v, dict):
            return v
        return {
            name: {key: w for key, w in weights.items() if _is_weight(w)}
            for name, weights in v.items()
            if isinstance(weights, dict)
        }

    @field_validator("meta", mode="before")
    @classmethod
    def _drop_bad_records(cls, v: Any) -> Any:
        """A non-object ``meta``, bucket or record is discarded, not fatal."""
        if not isinstance(v, dict):
            return {}
        return {
            name: {key: rec for key, rec in records.items() if isinstance(rec, dict)}
            for name, records in v.items()
            if isinstance(records, dict)
        }

    @field_validator("updated_at", mode="before")
    @classmethod
    def _truncate_timestamp(cls, v: Any) -> Any:
        """Truncate float timestamps; anything non-numeric reads as 0."""
        return int(v) if _is_weight(v) else 0

    @field_validator("schema_version", mode="before")
    @classmethod
    def _coerce_version(cls, v: Any) -> Any:
        return int(v) if _is_weight(v) else 1

    @field_validator("identity_fingerprint", "session_id", mode="before")
    @classmethod
    def _text_or_none(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None

    # ----------------------------------------------------------- constructors

    @classmethod
    def fresh(cls, fingerprint: str, *, schema_version: int = 1, now: int = 0) -> Snapshot:
        """Return an empty snapshot owned by ``fingerprint``."""
        return cls(
            schema_version=schema_version,
            updated_at=now,
            buckets={},
            meta={},
            identity_fingerprint=fingerprint,
            session_id=None,
        )

    @classmethod
    def from_document(cls, doc: Any) -> Result[Snapshot, StoreFailure]:
        """Validate a decoded JSON document into a snapshot."""
        if not isinstance(doc, dict):
            return fail(FailureKind.INPUT_INVALID, f"expected an object, got {type(doc).__name__}")
        if not isinstance(doc.get("buckets"), dict):
            return fail(FailureKind.INPUT_INVALID, "missing or non-object 'buckets'")
        try:
            return ok(cls.model_validate(doc))
        except ValidationError as e:
            return fail(FailureKind.INPUT_INVALID, f"{e.error_count()} validation error(s)")

    @classmethod
    def parse(cls, raw: str) -> Result[Snapshot, StoreFailure]:
        """Decode a persisted JSON string; malformed input is a read failure."""
        try:
            doc = json.loads(raw)
        except (TypeError, ValueError) as e:
            return fail(FailureKind.STORAGE_READ, f"unparsable snapshot: {e}")
        return cls.from_document(doc)

    # ---------------------------------------------------------- serialization

    def to_document(self) -> dict[str, Any]:
        """Return a deep, JSON-safe copy in the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        """Serialize the whole snapshot to a compact JSON string."""
        return json.dumps(self.to_document(), ensure_ascii=False, separators=(",", ":"))


__all__ = ["MetaRecord", "MetaValue", "Snapshot", "validate_meta"]

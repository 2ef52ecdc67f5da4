"""Storage adapters: where the snapshot string actually lives.

The engine only ever needs ``get(key) -> str | None`` and ``set(key, value)``
on a single opaque string. Two implementations ship here:

- `MemoryStorage`: a dict, for tests and embedding.
- `FileStorage`: one UTF-8 JSON file per key under a base directory.

Default directory
-----------------
`FileStorage()` with no argument uses ``INTERESTKIT_STORAGE_DIR`` or
``artifacts/interestkit/``.

Either adapter may raise; callers at the lifecycle seam treat any exception
as a storage failure, never as fatal.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class Storage(Protocol):
    """Key -> string persistence medium."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage; values live for the lifetime of the object."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def __contains__(self, key: object) -> bool:  # pragma: no cover - trivial
        return key in self._items


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def _default_dir() -> Path:
    """Return the default base directory for snapshot files."""
    root = os.getenv("INTERESTKIT_STORAGE_DIR")
    return Path(root) if root else Path("artifacts") / "interestkit"


class FileStorage:
    """Persist each key as a JSON file under ``base_dir``.

    Notes
    -----
    - Keys are made filename-safe by collapsing anything outside
      ``[A-Za-z0-9._-]`` to ``_``, so ``"interestkit:data"`` is stored as
      ``interestkit_data.json``.
    - Writes go to a sibling ``.tmp`` file first and are then renamed over
      the target, so a crash mid-write never leaves a truncated snapshot.
    """

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self.base_dir: Path = Path(base_dir) if base_dir is not None else _default_dir()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Return the file path used for ``key``."""
        safe = _UNSAFE.sub("_", key).strip("_") or "default"
        return self.base_dir / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            f.write(value)
            f.write("\n")
        tmp.replace(path)


__all__ = ["FileStorage", "MemoryStorage", "Storage"]

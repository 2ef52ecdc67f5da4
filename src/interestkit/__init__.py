"""InterestKit: local interest aggregation with time-decayed affinity.

Typical use::

    from interestkit import InterestEngine, MemoryStorage

    engine = InterestEngine(storage=MemoryStorage(), identity=lambda: "My Site")
    engine.record("items", "pumpkin-soup", 3, {"title": "Pumpkin Soup"})
    engine.get_top("items")
"""

from __future__ import annotations

__version__ = "0.1.0"

from interestkit.core.recorder import Interaction
from interestkit.core.store.storage import FileStorage, MemoryStorage, Storage
from interestkit.engine import InterestEngine

__all__ = [
    "FileStorage",
    "InterestEngine",
    "Interaction",
    "MemoryStorage",
    "Storage",
    "__version__",
]

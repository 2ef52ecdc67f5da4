"""Core package initializer for InterestKit.

The building blocks live in submodules; import them directly, e.g.:
    from interestkit.core.settings import settings, load_settings, Settings, get_logger
"""

from __future__ import annotations

__all__ = ["__doc__"]

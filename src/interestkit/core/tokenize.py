"""Free-text tokenization for search-style interest signals."""

from __future__ import annotations

import re
from collections.abc import Collection

from interestkit.core.settings import DEFAULT_STOP_WORDS

_SPLIT = re.compile(r"[^a-z0-9]+")


def tokenize(text: str | None, stop_words: Collection[str] = DEFAULT_STOP_WORDS) -> list[str]:
    """Split ``text`` into lower-case alphanumeric tokens.

    Tokens of length <= 1 and tokens in ``stop_words`` are dropped. Duplicates
    are kept in order; each one counts as a separate signal downstream.

    >>> tokenize("It is How to Make a Soup")
    ['soup']
    """
    if not text:
        return []
    return [t for t in _SPLIT.split(str(text).lower()) if len(t) > 1 and t not in stop_words]


__all__ = ["tokenize"]

"""
slim_memory — Process-local read buffer.

A cache-of-the-cache for a whitelisted set of keys. Entries never
expire on their own: they are dropped only when the facade writes
or deletes the key, or on a full ``clear()``. A value may therefore
outlive its remote TTL. Values are deep-copied in and out, so
callers never share an object with the buffer.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, Set, Tuple

_MISSING = object()


class LocalBuffer:
    """
    In-process mapping from logical key to last seen value.

    Only keys listed in ``cached_keys`` are ever stored.
    """

    __slots__ = ("cached_keys", "_entries")

    def __init__(self, cached_keys: Iterable[str] = ()):
        self.cached_keys: Set[str] = set(cached_keys)
        self._entries: Dict[str, Any] = {}

    def is_cached(self, key: str) -> bool:
        return key in self.cached_keys

    def lookup(self, key: str) -> Tuple[bool, Any]:
        """Return ``(hit, value)``. Keys no longer whitelisted always miss."""
        if key not in self.cached_keys:
            return False, None
        value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, copy.deepcopy(value)

    def store(self, key: str, value: Any) -> bool:
        """Remember ``value`` if ``key`` is eligible. Returns whether it was stored."""
        if key not in self.cached_keys:
            return False
        self._entries[key] = copy.deepcopy(value)
        return True

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def evict_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<LocalBuffer entries={len(self._entries)} cached_keys={len(self.cached_keys)}>"

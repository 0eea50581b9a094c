"""
slim_memory — Tag index.

A tag is an ordinary cache entry whose value is the list of member
keys written under it. The index is maintained with a
read-modify-write on every tagged write; concurrent writers sharing
a tag can lose each other's members. There is no pruning: a key
deleted on its own stays listed until the tag is purged or the
server is flushed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

if TYPE_CHECKING:
    from .core import Backend

logger = logging.getLogger("slim_memory.tags")


class TagIndex:
    """
    Tag bookkeeping on top of a backend's untagged primitives.

    Drivers own one index each and call ``register`` before the
    primary write, so the tag entry shares the primary TTL.
    """

    __slots__ = ("_backend",)

    def __init__(self, backend: "Backend"):
        self._backend = backend

    def members(self, tag: str) -> Optional[List[str]]:
        """
        Member keys of ``tag``.

        Returns None when the tag entry is absent or does not hold a
        member list.
        """
        keys = self._backend.get(tag)
        if keys is None:
            return None
        if not isinstance(keys, (list, tuple)):
            logger.warning(f"Tag '{tag}' holds a {type(keys).__name__}, not a member list")
            return None
        return list(keys)

    def register(self, tag: str, keys: Iterable[str], ttl: Optional[int] = None) -> bool:
        """Append ``keys`` to the member list of ``tag``."""
        merged: List[str] = []
        seen = set()
        for key in (self.members(tag) or []) + list(keys):
            if key not in seen:
                seen.add(key)
                merged.append(key)
        return self._backend.set(tag, merged, ttl)

    def collect(self, tag: str) -> Dict[str, Any]:
        """Fetch every member of ``tag`` in one bulk read."""
        keys = self.members(tag)
        if keys is None:
            return {}
        return self._backend.get_multiple(keys)

    def purge(self, tag: str) -> bool:
        """Delete every member and the tag entry in one bulk delete."""
        keys = self.members(tag)
        if keys is None:
            logger.debug(f"Tag '{tag}' not found, nothing to purge")
            return False
        keys.append(tag)
        return self._backend.delete_multiple(keys)

"""
slim_memory — Key namespacing.

Keys and tags are decorated with a prefix before they reach a
backend, so several facades can share one physical cache server.
"""

from __future__ import annotations

from typing import Optional


class PrefixKeyBuilder:
    """
    Colon-separated prefix key builder.

    Pattern: ``{prefix}:{key}``, or ``{key}`` unchanged when no prefix
    is configured.

    Example: ``app:user:123``
    """

    separator = ":"

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def build(self, key: str) -> str:
        """Build the storage key for a logical key."""
        if self.prefix:
            return f"{self.prefix}{self.separator}{key}"
        return key

    def build_optional(self, key: Optional[str]) -> Optional[str]:
        """Like ``build`` but passes ``None`` through (used for tags)."""
        if key is None:
            return None
        return self.build(key)

    def strip(self, storage_key: str) -> str:
        """Recover the logical key from a storage key built by this builder."""
        head = f"{self.prefix}{self.separator}"
        if self.prefix and storage_key.startswith(head):
            return storage_key[len(head):]
        return storage_key

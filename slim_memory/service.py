"""
slim_memory — Mem: the caching facade.

Composes the connection pool, key namespacing, the local read
buffer and tag bookkeeping behind one synchronous API.

Read path:   disabled? → buffer → slave-preferring backend
Write path:  evict buffer → master-preferring backend → buffer on success

Usage::

    mem = Mem(
        [
            {"driver": "redis", "host": "10.0.0.1", "port": 6379},
            {"driver": "redis", "host": "10.0.0.2", "port": 6379, "role": "slave"},
        ],
        prefix="app",
        cached_keys=["settings"],
    )

    mem.set("user:1", {"name": "Ann"}, ttl=300, tag="users")
    mem.get("user:1")
    mem.get("report", default=Lazy(build_report))
    mem.delete_by_tag("users")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Type, Union

from .buffer import LocalBuffer
from .core import Backend, BackendConfig, MemConfig, MemStats, resolve_default
from .faults import CacheConfigFault
from .key_builder import PrefixKeyBuilder
from .pool import ConnectionPool
from .tags import TagIndex

logger = logging.getLogger("slim_memory")


class Mem:
    """
    Uniform facade over interchangeable remote key-value stores.

    Attributes:
        disabled: When True, reads skip the backend and the buffer and
            return the caller's default. Writes are unaffected.
        prefix: Namespace prepended to every key and tag.
        cached_keys: Logical keys eligible for the local buffer.

    Remote misses and rejected writes are reported through return
    values (the default, ``False`` or ``{}``), never raised. Only
    pool resolution raises, with ``CacheConnectionFault``.
    """

    def __init__(
        self,
        configs: Iterable[Union[Mapping[str, Any], BackendConfig]] = (),
        *,
        prefix: str = "",
        cached_keys: Iterable[str] = (),
        disabled: bool = False,
        pool_strategy: str = "sticky",
        drivers: Optional[Mapping[str, Type[Backend]]] = None,
    ):
        self.disabled = disabled
        self._pool = ConnectionPool(configs, drivers=drivers, strategy=pool_strategy)
        self._keys = PrefixKeyBuilder(prefix)
        self._buffer = LocalBuffer(cached_keys)
        self._stats = MemStats()

    @classmethod
    def from_config(
        cls,
        config: MemConfig,
        drivers: Optional[Mapping[str, Type[Backend]]] = None,
    ) -> "Mem":
        """Build a facade from a ``MemConfig``."""
        return cls(
            config.connections,
            prefix=config.prefix,
            cached_keys=config.cached_keys,
            disabled=config.disabled,
            pool_strategy=config.pool_strategy,
            drivers=drivers,
        )

    # ── Configuration ────────────────────────────────────────────────

    @property
    def prefix(self) -> str:
        return self._keys.prefix

    @prefix.setter
    def prefix(self, value: str) -> None:
        self._keys.prefix = value

    @property
    def cached_keys(self) -> set:
        """Mutable set of keys eligible for buffering."""
        return self._buffer.cached_keys

    @cached_keys.setter
    def cached_keys(self, keys: Iterable[str]) -> None:
        self._buffer.cached_keys = set(keys)

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def buffer(self) -> LocalBuffer:
        return self._buffer

    def get_instance(self, use_master: bool = False) -> Backend:
        """Resolve a live backend (see ``ConnectionPool.resolve``)."""
        return self._pool.resolve(use_master)

    # ── Core Operations ──────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        """
        Return the value for ``key``.

        Args:
            key: Logical key
            default: Literal value, or ``Lazy`` producer run only on a miss

        Returns:
            Cached value, or the resolved default on a miss or when disabled.
        """
        if self.disabled:
            return resolve_default(default)

        hit, value = self._buffer.lookup(key)
        if hit:
            self._stats.buffer_hits += 1
            return value

        self._stats.remote_reads += 1
        value = self.get_instance(False).get(self._keys.build(key))
        if value is None:
            self._stats.misses += 1
            return resolve_default(default)

        self._buffer.store(key, value)
        return value

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        """
        Write ``value`` under ``key``.

        Args:
            key: Logical key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiry)
            tag: Tag to register the key under
        """
        self._buffer.evict(key)
        self._stats.writes += 1

        result = self.get_instance(True).set(
            self._keys.build(key),
            value,
            ttl,
            self._keys.build_optional(tag),
        )
        if result:
            self._buffer.store(key, value)
        return result

    def delete(self, key: str) -> bool:
        self._buffer.evict(key)
        self._stats.deletes += 1
        return self.get_instance(True).delete(self._keys.build(key))

    def clear(self) -> bool:
        """Empty the local buffer and flush the master backend."""
        self._buffer.clear()
        backend = self.get_instance(True)
        logger.info(f"Flushing {backend.name} backend")
        return backend.clear()

    def has(self, key: str) -> bool:
        """Ask the master backend directly; the buffer is never consulted."""
        return self.get_instance(True).has(self._keys.build(key))

    # ── Bulk Operations ──────────────────────────────────────────────

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Any:
        """
        Batch read.

        Buffered keys are answered locally, the rest in one remote call.

        Returns:
            Dict of logical key → value for the keys found. When nothing
            is found (or reads are disabled) the resolved default, or an
            empty dict if no default was given.
        """
        if self.disabled:
            return self._empty_result(default)

        values: Dict[str, Any] = {}
        remote: Dict[str, str] = {}
        for key in keys:
            hit, value = self._buffer.lookup(key)
            if hit:
                self._stats.buffer_hits += 1
                values[key] = value
            else:
                remote[self._keys.build(key)] = key

        if remote:
            self._stats.remote_reads += len(remote)
            fetched = self.get_instance(False).get_multiple(list(remote))
            for storage_key, key in remote.items():
                if storage_key not in fetched or fetched[storage_key] is None:
                    self._stats.misses += 1
                    continue
                values[key] = fetched[storage_key]
                self._buffer.store(key, values[key])

        if not values:
            return self._empty_result(default)
        return values

    def set_multiple(
        self,
        values: Mapping[str, Any],
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        """Batch write, optionally registering every key under ``tag``."""
        self._buffer.evict_many(values)
        self._stats.writes += len(values)

        result = self.get_instance(True).set_multiple(
            {self._keys.build(k): v for k, v in values.items()},
            ttl,
            self._keys.build_optional(tag),
        )
        if result:
            for key, value in values.items():
                self._buffer.store(key, value)
        return result

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        self._buffer.evict_many(keys)
        self._stats.deletes += len(keys)
        return self.get_instance(True).delete_multiple([self._keys.build(k) for k in keys])

    # ── Tags ─────────────────────────────────────────────────────────

    def get_by_tag(self, tag: str) -> Dict[str, Any]:
        """Return logical key → value for every member of ``tag``."""
        found = self.get_instance(False).get_by_tag(self._keys.build(tag))
        return {self._keys.strip(k): v for k, v in found.items()}

    def delete_by_tag(self, tag: str) -> bool:
        """
        Delete every member of ``tag`` and the tag itself.

        Buffered members are evicted first. Returns False when the tag
        does not exist.
        """
        backend = self.get_instance(True)
        storage_tag = self._keys.build(tag)

        if len(self._buffer):
            members = TagIndex(backend).members(storage_tag) or []
            self._buffer.evict_many(self._keys.strip(k) for k in members)
            logger.debug(f"Dropped buffered members of tag '{tag}' ({len(members)} listed)")

        self._stats.deletes += 1
        return backend.delete_by_tag(storage_tag)

    # ── Lifecycle ────────────────────────────────────────────────────

    def close(self) -> None:
        """Drop the local buffer and close every open backend connection."""
        self._buffer.clear()
        self._pool.close()

    def __enter__(self) -> "Mem":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Diagnostics ──────────────────────────────────────────────────

    def stats(self) -> MemStats:
        return self._stats

    def _empty_result(self, default: Any) -> Any:
        if default is None:
            return {}
        return resolve_default(default)

    def __repr__(self) -> str:
        return f"<Mem prefix={self.prefix!r} disabled={self.disabled} pool={self._pool!r}>"


# Module-level default instance, opt-in via ``set_default_mem()``
_default_mem: Optional[Mem] = None


def set_default_mem(mem: Optional[Mem]) -> None:
    """
    Register a process-wide ``Mem`` for code that cannot receive one
    by injection. Pass None to unregister.
    """
    global _default_mem
    _default_mem = mem


def get_default_mem() -> Mem:
    """
    Return the process-wide ``Mem``.

    Raises:
        CacheConfigFault: No default instance was registered.
    """
    if _default_mem is None:
        raise CacheConfigFault("no default Mem registered, call set_default_mem() first")
    return _default_mem

"""
slim_memory — Memcached driver.

Thin adapter over ``pymemcache``. Values are encoded through the
configured serializer (pickle by default) so tag member lists and
arbitrary Python values round-trip.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from pymemcache.client.base import Client
from pymemcache.exceptions import MemcacheError

from ..core import Backend
from ..faults import CacheConnectionFault
from ..serializers import SerdeAdapter, get_serializer
from ..tags import TagIndex

logger = logging.getLogger("slim_memory.backends.memcache")

_MISSING = object()


class MemcacheBackend(Backend):
    """
    Memcached-backed cache using pymemcache.

    ``options`` are forwarded to ``pymemcache.client.base.Client``;
    the ``serializer`` option ("pickle", "json", "msgpack") is
    consumed by the driver.
    """

    __slots__ = ("_address", "_client", "_tags")

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 10,
        options: Optional[Mapping[str, Any]] = None,
    ):
        options = dict(options or {})
        serializer = get_serializer(options.pop("serializer", "pickle"))

        self._address = f"{host}:{port}"
        self._client = Client(
            (host, int(port)),
            serde=SerdeAdapter(serializer),
            connect_timeout=timeout,
            **options,
        )
        self._tags = TagIndex(self)

        try:
            self._client.version()
        except (MemcacheError, OSError) as e:
            logger.error(f"Failed to connect to Memcached at {self._address}: {e}")
            self._client.close()
            raise CacheConnectionFault(backend=self.name, reason=str(e)) from e

        logger.info(f"Memcached connected: {self._address}")

    @property
    def name(self) -> str:
        return "memcache"

    @property
    def client(self) -> Client:
        """Underlying pymemcache client."""
        return self._client

    def get(self, key: str) -> Any:
        return self._client.get(key)

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        if tag:
            self._tags.register(tag, [key], ttl)

        return bool(self._client.set(key, value, expire=ttl or 0, noreply=False))

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(key, noreply=False))

    def clear(self) -> bool:
        return bool(self._client.flush_all(noreply=False))

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        if not keys:
            return {}
        return self._client.get_many(keys)

    def set_multiple(
        self,
        values: Mapping[str, Any],
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        if tag:
            self._tags.register(tag, list(values), ttl)

        failed = self._client.set_many(dict(values), expire=ttl or 0, noreply=False)
        return not failed

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not keys:
            return False
        return bool(self._client.delete_many(keys, noreply=False))

    def has(self, key: str) -> bool:
        return self._client.get(key, default=_MISSING) is not _MISSING

    def get_by_tag(self, tag: str) -> Dict[str, Any]:
        return self._tags.collect(tag)

    def delete_by_tag(self, tag: str) -> bool:
        return self._tags.purge(tag)

    def close(self) -> None:
        self._client.close()
        logger.debug(f"Closed connection to {self._address}")

    def __repr__(self) -> str:
        return f"<MemcacheBackend {self._address}>"

"""
slim_memory — Redis driver.

Thin adapter over the synchronous ``redis`` client. Values are
encoded with the configured serializer (pickle by default); TTLs
are applied with ``SET EX`` for single writes and ``EXPIRE`` in a
pipeline after ``MSET`` for bulk writes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

import redis
from redis.exceptions import RedisError

from ..core import Backend
from ..faults import CacheConnectionFault
from ..serializers import get_serializer
from ..tags import TagIndex

logger = logging.getLogger("slim_memory.backends.redis")


class RedisBackend(Backend):
    """
    Redis-backed cache using redis-py.

    ``options`` are forwarded to ``redis.Redis`` (``db``, ``password``,
    ``socket_timeout``...); the ``serializer`` option is consumed by
    the driver. Responses are never decoded by the client since the
    serializer works on bytes.
    """

    __slots__ = ("_address", "_client", "_serializer", "_tags")

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 10,
        options: Optional[Mapping[str, Any]] = None,
    ):
        options = dict(options or {})
        self._serializer = get_serializer(options.pop("serializer", "pickle"))
        options["decode_responses"] = False

        self._address = f"{host}:{port}"
        self._client = redis.Redis(
            host=host,
            port=int(port),
            socket_connect_timeout=timeout,
            **options,
        )
        self._tags = TagIndex(self)

        try:
            self._client.ping()
        except RedisError as e:
            logger.error(f"Failed to connect to Redis at {self._address}: {e}")
            self._client.close()
            raise CacheConnectionFault(backend=self.name, reason=str(e)) from e

        logger.info(f"Redis connected: {self._address}")

    @property
    def name(self) -> str:
        return "redis"

    @property
    def client(self) -> redis.Redis:
        """Underlying redis-py client."""
        return self._client

    def _load(self, raw: Optional[bytes]) -> Any:
        if raw is None:
            return None
        return self._serializer.deserialize(raw)

    def get(self, key: str) -> Any:
        return self._load(self._client.get(key))

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        if tag:
            self._tags.register(tag, [key], ttl)

        return bool(self._client.set(key, self._serializer.serialize(value), ex=ttl or None))

    def delete(self, key: str) -> bool:
        return self._client.delete(key) > 0

    def clear(self) -> bool:
        return bool(self._client.flushdb())

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        if not keys:
            return {}
        raw_values = self._client.mget(keys)
        return {
            key: self._load(raw)
            for key, raw in zip(keys, raw_values)
            if raw is not None
        }

    def set_multiple(
        self,
        values: Mapping[str, Any],
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        if tag:
            self._tags.register(tag, list(values), ttl)

        if not values:
            return False

        result = self._client.mset({k: self._serializer.serialize(v) for k, v in values.items()})
        if result and ttl:
            pipe = self._client.pipeline(transaction=False)
            for key in values:
                pipe.expire(key, ttl)
            pipe.execute()

        return bool(result)

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not keys:
            return False
        return self._client.delete(*keys) > 0

    def has(self, key: str) -> bool:
        return self._client.exists(key) > 0

    def get_by_tag(self, tag: str) -> Dict[str, Any]:
        return self._tags.collect(tag)

    def delete_by_tag(self, tag: str) -> bool:
        return self._tags.purge(tag)

    def close(self) -> None:
        self._client.close()
        logger.debug(f"Closed connection to {self._address}")

    def __repr__(self) -> str:
        return f"<RedisBackend {self._address}>"

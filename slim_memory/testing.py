"""
slim_memory testing - In-process backend for tests.

Provides :class:`InMemoryBackend`, a dict-backed implementation of the
backend contract that records every call, and :func:`memory_drivers`
to plug it into a ``Mem`` under the ``memory`` driver name.
"""

from __future__ import annotations

import time as _time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from .core import Backend
from .faults import CacheConnectionFault
from .tags import TagIndex


class InMemoryBackend(Backend):
    """
    In-memory backend with TTL tracking and a call log.

    TTLs are honoured: expired keys are transparently evicted.
    Pass ``options={"fail_probe": True}`` to simulate a server that
    fails its liveness probe.

    Usage::

        mem = Mem([{"driver": "memory"}], drivers=memory_drivers())
        mem.set("key", "value", ttl=60)
        backend = mem.get_instance(True)
        assert backend.calls[-1][0] == "set"
    """

    def __init__(
        self,
        host: str = "",
        port: int = 0,
        timeout: float = 10,
        options: Optional[Mapping[str, Any]] = None,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.options = dict(options or {})
        if self.options.get("fail_probe"):
            raise CacheConnectionFault(backend=self.name, reason="probe failed")

        self._store: Dict[str, Any] = {}
        self._ttls: Dict[str, float] = {}  # key → expiry timestamp
        self._tags = TagIndex(self)
        self.calls: List[Tuple[Any, ...]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "memory"

    # -- TTL helpers -----------------------------------------------------

    def _is_expired(self, key: str) -> bool:
        if key in self._ttls and _time.monotonic() >= self._ttls[key]:
            self._store.pop(key, None)
            del self._ttls[key]
            return True
        return False

    def _write(self, key: str, value: Any, ttl: Optional[int]) -> None:
        self._store[key] = value
        if ttl:
            self._ttls[key] = _time.monotonic() + ttl
        else:
            self._ttls.pop(key, None)

    def _remove(self, key: str) -> bool:
        self._is_expired(key)
        self._ttls.pop(key, None)
        return self._store.pop(key, _ABSENT) is not _ABSENT

    # -- Backend contract ------------------------------------------------

    def get(self, key: str) -> Any:
        self.calls.append(("get", key))
        self._is_expired(key)
        return self._store.get(key)

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        self.calls.append(("set", key, ttl, tag))
        if tag:
            self._tags.register(tag, [key], ttl)
        self._write(key, value, ttl)
        return True

    def delete(self, key: str) -> bool:
        self.calls.append(("delete", key))
        return self._remove(key)

    def clear(self) -> bool:
        self.calls.append(("clear",))
        self._store.clear()
        self._ttls.clear()
        return True

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        self.calls.append(("get_multiple", tuple(keys)))
        result = {}
        for key in keys:
            if not self._is_expired(key) and key in self._store:
                result[key] = self._store[key]
        return result

    def set_multiple(
        self,
        values: Mapping[str, Any],
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        self.calls.append(("set_multiple", tuple(values), ttl, tag))
        if tag:
            self._tags.register(tag, list(values), ttl)
        for key, value in values.items():
            self._write(key, value, ttl)
        return True

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        self.calls.append(("delete_multiple", tuple(keys)))
        removed = [self._remove(key) for key in keys]
        return any(removed)

    def has(self, key: str) -> bool:
        self.calls.append(("has", key))
        self._is_expired(key)
        return key in self._store

    def get_by_tag(self, tag: str) -> Dict[str, Any]:
        self.calls.append(("get_by_tag", tag))
        return self._tags.collect(tag)

    def delete_by_tag(self, tag: str) -> bool:
        self.calls.append(("delete_by_tag", tag))
        return self._tags.purge(tag)

    def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True

    # -- Inspection ------------------------------------------------------

    def raw(self, key: str, default: Any = None) -> Any:
        """Read a storage key without recording a call."""
        self._is_expired(key)
        return self._store.get(key, default)

    def keys(self) -> List[str]:
        return sorted(k for k in list(self._store) if not self._is_expired(k))

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def reset_calls(self) -> None:
        self.calls.clear()

    def __repr__(self) -> str:
        return f"<InMemoryBackend {self.host}:{self.port} keys={len(self._store)}>"


_ABSENT = object()


def memory_drivers() -> Dict[str, Type[Backend]]:
    """Driver mapping exposing :class:`InMemoryBackend` as ``memory``."""
    return {"memory": InMemoryBackend}

"""
slim_memory — Core types, contracts, and data structures.

Defines the backend capability contract every driver implements,
the configuration dataclasses, facade statistics and the lazy
default wrapper.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
)


# ============================================================================
# Roles
# ============================================================================

class Role(str, Enum):
    """Connection roles used to bias backend selection."""
    MASTER = "master"   # Authoritative, used for writes
    SLAVE = "slave"     # Preferred for reads

    @classmethod
    def normalize(cls, value: Any) -> "Role":
        """``"master"`` stays master, anything else becomes slave."""
        return cls.MASTER if value == cls.MASTER.value else cls.SLAVE


# ============================================================================
# Configuration
# ============================================================================

@dataclass
class BackendConfig:
    """
    Connection settings for a single cache server.

    ``options`` are passed to the underlying client library unchanged,
    apart from keys the driver consumes itself (e.g. ``serializer``).
    """
    driver: str = "memcache"
    host: str = ""
    port: int = 0
    timeout: float = 10
    options: Dict[str, Any] = field(default_factory=dict)
    role: str = "master"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BackendConfig":
        """Merge a raw mapping over the defaults."""
        return cls(
            driver=data.get("driver", "memcache"),
            host=data.get("host", ""),
            port=data.get("port", 0),
            timeout=data.get("timeout", 10),
            options=dict(data.get("options") or {}),
            role=data.get("role", "master"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "driver": self.driver,
            "host": self.host,
            "port": self.port,
            "timeout": self.timeout,
            "options": dict(self.options),
            "role": self.role,
        }


@dataclass
class MemConfig:
    """
    Facade configuration.

    Loaded from files/environment via ``ConfigLoader.get_memory_config()``
    and turned into a ``Mem`` by ``create_mem()``.
    """
    connections: List[BackendConfig] = field(default_factory=list)
    prefix: str = ""
    cached_keys: Tuple[str, ...] = ()
    disabled: bool = False
    pool_strategy: str = "sticky"    # "sticky" or "random"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "connections": [c.to_dict() for c in self.connections],
            "prefix": self.prefix,
            "cached_keys": list(self.cached_keys),
            "disabled": self.disabled,
            "pool_strategy": self.pool_strategy,
        }


# ============================================================================
# Stats
# ============================================================================

@dataclass
class MemStats:
    """Facade-level counters for observability."""
    buffer_hits: int = 0
    remote_reads: int = 0
    misses: int = 0
    writes: int = 0
    deletes: int = 0

    @property
    def hit_rate(self) -> float:
        """Share of reads served from the local buffer, as a percentage."""
        total = self.buffer_hits + self.remote_reads
        if total == 0:
            return 0.0
        return (self.buffer_hits / total) * 100.0

    def reset(self) -> None:
        self.buffer_hits = 0
        self.remote_reads = 0
        self.misses = 0
        self.writes = 0
        self.deletes = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buffer_hits": self.buffer_hits,
            "remote_reads": self.remote_reads,
            "misses": self.misses,
            "writes": self.writes,
            "deletes": self.deletes,
            "hit_rate": round(self.hit_rate, 2),
        }


# ============================================================================
# Defaults
# ============================================================================

@dataclass(frozen=True)
class Lazy:
    """
    Default produced on demand.

    Wrap a zero-argument callable to have it invoked only when the
    requested key is missing::

        mem.get("report", default=Lazy(build_report))
    """
    producer: Callable[[], Any]

    def produce(self) -> Any:
        return self.producer()


def resolve_default(default: Any) -> Any:
    """Return the literal default, or run the producer of a ``Lazy``."""
    if isinstance(default, Lazy):
        return default.produce()
    return default


# ============================================================================
# Backend contract
# ============================================================================

class Backend(ABC):
    """
    Capability contract for one physical cache server.

    Drivers are constructed from ``(host, port, timeout, options)`` and
    must raise ``CacheConnectionFault`` when their liveness probe fails.

    Missing keys are reported as ``None`` by ``get`` and omitted from
    the mappings returned by the bulk reads.
    """

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        """
        Store a value, registering ``key`` under ``tag`` first.

        Args:
            key: Storage key
            value: Value to store
            ttl: Time-to-live in seconds (None or 0 = no expiry)
            tag: Tag key the entry is grouped under
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    def clear(self) -> bool:
        """Flush the entire server (not namespace scoped)."""
        ...

    @abstractmethod
    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def set_multiple(
        self,
        values: Mapping[str, Any],
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> bool:
        ...

    @abstractmethod
    def delete_multiple(self, keys: Iterable[str]) -> bool:
        ...

    @abstractmethod
    def has(self, key: str) -> bool:
        ...

    @abstractmethod
    def get_by_tag(self, tag: str) -> Dict[str, Any]:
        """Return every member of ``tag``, or an empty dict if the tag is absent."""
        ...

    @abstractmethod
    def delete_by_tag(self, tag: str) -> bool:
        """Delete every member of ``tag`` and the tag itself. False if absent."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the client connection. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for diagnostics."""
        ...

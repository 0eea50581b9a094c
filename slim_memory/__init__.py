"""
slim_memory — Caching facade over interchangeable remote key-value stores.

Provides one synchronous API over Memcached and Redis with:
- **Connection pooling**: master/slave roles with randomized selection
  and fallback across roles
- **Namespacing**: every key and tag prefixed with a configured string
- **Local read buffer**: process-local copy of whitelisted keys
- **Tags**: group writes under a tag, read or delete them together
- **Faults**: typed connection/config faults
- **Config**: YAML/JSON files, .env and environment variables
- **CLI**: ``mem check``, ``mem get``, ``mem tag delete`` ...

Usage::

    from slim_memory import Mem, Lazy

    mem = Mem(
        [{"driver": "memcache", "host": "127.0.0.1", "port": 11211}],
        prefix="app",
        cached_keys=["settings"],
    )
    mem.set("settings", {"theme": "dark"}, ttl=600, tag="config")
    mem.get("settings")
    mem.get("missing", default=Lazy(lambda: compute()))
"""

__version__ = "1.0.0"

from .core import (
    Backend,
    BackendConfig,
    Lazy,
    MemConfig,
    MemStats,
    Role,
    resolve_default,
)

from .buffer import LocalBuffer
from .key_builder import PrefixKeyBuilder
from .tags import TagIndex
from .pool import BackendFactory, ConnectionPool, get_driver, register_driver, unregister_driver

from .service import Mem, get_default_mem, set_default_mem
from .providers import build_mem_config, create_mem
from .config import ConfigLoader

from .serializers import (
    JsonCacheSerializer,
    MsgpackCacheSerializer,
    PickleCacheSerializer,
    get_serializer,
)

from .faults import (
    CacheConfigFault,
    CacheConnectionFault,
    CacheSerializationFault,
    Fault,
    FaultDomain,
    MemoryFault,
    Severity,
)

__all__ = [
    # Core
    "Backend",
    "BackendConfig",
    "Lazy",
    "MemConfig",
    "MemStats",
    "Role",
    "resolve_default",
    # Components
    "LocalBuffer",
    "PrefixKeyBuilder",
    "TagIndex",
    "BackendFactory",
    "ConnectionPool",
    "get_driver",
    "register_driver",
    "unregister_driver",
    # Facade
    "Mem",
    "get_default_mem",
    "set_default_mem",
    "build_mem_config",
    "create_mem",
    "ConfigLoader",
    # Serializers
    "JsonCacheSerializer",
    "MsgpackCacheSerializer",
    "PickleCacheSerializer",
    "get_serializer",
    # Faults
    "CacheConfigFault",
    "CacheConnectionFault",
    "CacheSerializationFault",
    "Fault",
    "FaultDomain",
    "MemoryFault",
    "Severity",
]

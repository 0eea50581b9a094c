"""
slim_memory backends — Memcached and Redis drivers.
"""

from .memcache import MemcacheBackend
from .redis import RedisBackend

__all__ = [
    "MemcacheBackend",
    "RedisBackend",
]

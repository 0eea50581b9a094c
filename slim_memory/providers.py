"""
slim_memory — Factories turning raw configuration into a facade.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Type

from .core import Backend, BackendConfig, MemConfig
from .faults import CacheConfigFault
from .service import Mem

logger = logging.getLogger("slim_memory.providers")


def build_mem_config(config_dict: Dict[str, Any]) -> MemConfig:
    """
    Build MemConfig from dictionary (e.g., from ConfigLoader).

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        MemConfig instance
    """
    connections = config_dict.get("connections", [])
    if not isinstance(connections, (list, tuple)):
        raise CacheConfigFault("'connections' must be a list of connection mappings")

    cached_keys = config_dict.get("cached_keys", ())
    if isinstance(cached_keys, str):
        cached_keys = [k.strip() for k in cached_keys.split(",") if k.strip()]

    return MemConfig(
        connections=[
            c if isinstance(c, BackendConfig) else BackendConfig.from_dict(c)
            for c in connections
        ],
        prefix=config_dict.get("prefix", "") or "",
        cached_keys=tuple(cached_keys),
        disabled=bool(config_dict.get("disabled", False)),
        pool_strategy=config_dict.get("pool_strategy", "sticky"),
    )


def create_mem(
    config: MemConfig,
    drivers: Optional[Mapping[str, Type[Backend]]] = None,
) -> Mem:
    """
    Factory: create a Mem facade from configuration.

    Args:
        config: MemConfig instance
        drivers: Extra driver classes by name

    Returns:
        Configured Mem
    """
    mem = Mem.from_config(config, drivers=drivers)
    logger.debug(f"Created {mem!r} with {len(mem.pool)} connection(s)")
    return mem

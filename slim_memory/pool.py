"""
slim_memory — Connection pool registry.

Holds lazily-constructed backend factories grouped by role and
resolves a role request to one live backend.

Selection order for ``resolve(prefer_master)``:
    preferred role → master → slave → CacheConnectionFault

Strategies:
- ``sticky`` (default): the first resolution of a role picks a
  factory at random and the resulting backend replaces the whole
  role slot. Every later call reuses it, so there is no further load
  distribution and no failover to the other candidates.
- ``random``: the factory list is kept and a factory is picked at
  random on every call. Each factory's backend is built once and
  reused afterwards.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, Union

from .core import Backend, BackendConfig, Role
from .faults import CacheConfigFault, CacheConnectionFault

logger = logging.getLogger("slim_memory.pool")

STRATEGIES = ("sticky", "random")

# Drivers registered at runtime via ``register_driver()``
_registered_drivers: Dict[str, Type[Backend]] = {}


def register_driver(name: str, driver: Type[Backend]) -> None:
    """
    Make an additional driver selectable by name in connection configs.

    Args:
        name: Driver identifier (case-insensitive)
        driver: Backend class taking ``(host, port, timeout, options)``
    """
    _registered_drivers[name.lower()] = driver


def unregister_driver(name: str) -> None:
    _registered_drivers.pop(name.lower(), None)


def get_driver(name: str) -> Optional[Type[Backend]]:
    """
    Look up a driver class by identifier.

    Returns None for unknown identifiers.
    """
    name = name.lower()

    if name in _registered_drivers:
        return _registered_drivers[name]

    if name == "memcache":
        from .backends.memcache import MemcacheBackend
        return MemcacheBackend

    elif name == "redis":
        from .backends.redis import RedisBackend
        return RedisBackend

    return None


class BackendFactory:
    """Zero-argument constructor for one configured backend."""

    __slots__ = ("config", "driver")

    def __init__(self, driver: Type[Backend], config: BackendConfig):
        self.driver = driver
        self.config = config

    def __call__(self) -> Backend:
        return self.driver(
            self.config.host,
            self.config.port,
            self.config.timeout,
            dict(self.config.options),
        )

    def __repr__(self) -> str:
        return (
            f"<BackendFactory driver={self.config.driver!r} "
            f"address={self.config.host}:{self.config.port} role={self.config.role!r}>"
        )


Slot = Union[List[BackendFactory], Backend]


class ConnectionPool:
    """
    Master/slave pool of candidate backends.

    Only candidate *configurations* are pooled. At most one live
    backend per factory exists, and with the ``sticky`` strategy at
    most one per role.
    """

    __slots__ = ("_drivers", "_strategy", "_slots", "_factories", "_live")

    def __init__(
        self,
        configs: Iterable[Union[Mapping[str, Any], BackendConfig]] = (),
        drivers: Optional[Mapping[str, Type[Backend]]] = None,
        strategy: str = "sticky",
    ):
        if strategy not in STRATEGIES:
            raise CacheConfigFault(
                f"unknown pool strategy '{strategy}', expected one of {list(STRATEGIES)}"
            )
        self._drivers = {k.lower(): v for k, v in (drivers or {}).items()}
        self._strategy = strategy
        self._slots: Dict[Role, Slot] = {Role.MASTER: [], Role.SLAVE: []}
        self._factories: Dict[Role, List[BackendFactory]] = {Role.MASTER: [], Role.SLAVE: []}
        self._live: Dict[BackendFactory, Backend] = {}
        self.initialize(configs)

    @property
    def strategy(self) -> str:
        return self._strategy

    def initialize(self, configs: Iterable[Union[Mapping[str, Any], BackendConfig]]) -> None:
        """
        Append one factory per config to the pool of its role.

        Unknown driver identifiers are skipped.
        """
        for raw in configs:
            config = raw if isinstance(raw, BackendConfig) else BackendConfig.from_dict(raw)
            role = Role.normalize(config.role)

            name = config.driver.lower()
            driver = self._drivers.get(name) or get_driver(name)
            if driver is None:
                logger.debug(f"Skipping connection with unknown driver '{config.driver}'")
                continue

            factory = BackendFactory(driver, config)
            self._factories[role].append(factory)

            slot = self._slots[role]
            if isinstance(slot, list):
                slot.append(factory)

    def resolve(self, prefer_master: bool = False) -> Backend:
        """
        Return a live backend, preferring the requested role.

        Raises:
            CacheConnectionFault: No role has a candidate.
        """
        preferred = Role.MASTER if prefer_master else Role.SLAVE

        for role in (preferred, Role.MASTER, Role.SLAVE):
            slot = self._slots[role]
            if not isinstance(slot, list):
                return slot
            if slot:
                return self._materialize(role, slot)

        raise CacheConnectionFault(backend="pool", reason="Unable to establish connection")

    def _materialize(self, role: Role, factories: List[BackendFactory]) -> Backend:
        factory = random.choice(factories)

        if self._strategy == "sticky":
            backend = factory()
            self._slots[role] = backend
            logger.debug(f"Role '{role.value}' pinned to {factory!r}")
            return backend

        backend = self._live.get(factory)
        if backend is None:
            backend = factory()
            self._live[factory] = backend
            logger.debug(f"Opened {factory!r}")
        return backend

    def close(self) -> None:
        """
        Close every live backend and return each role to its candidates.

        The pool stays usable: the next ``resolve`` opens a fresh backend.
        """
        opened = [s for s in self._slots.values() if not isinstance(s, list)]
        opened.extend(self._live.values())

        seen = set()
        for backend in opened:
            if id(backend) in seen:
                continue
            seen.add(id(backend))
            backend.close()

        self._slots = {role: list(f) for role, f in self._factories.items()}
        self._live.clear()
        logger.debug(f"Closed {len(seen)} backend(s)")

    def candidates(self) -> List[Tuple[Role, BackendFactory]]:
        """Every configured factory with its role, in configuration order."""
        return [(role, f) for role in (Role.MASTER, Role.SLAVE) for f in self._factories[role]]

    def is_materialized(self, role: Union[Role, str]) -> bool:
        """Whether ``role`` collapsed to a single live backend."""
        return not isinstance(self._slots[Role.normalize(role)], list)

    def __len__(self) -> int:
        return sum(len(f) for f in self._factories.values())

    def __repr__(self) -> str:
        return (
            f"<ConnectionPool strategy={self._strategy!r} "
            f"master={len(self._factories[Role.MASTER])} slave={len(self._factories[Role.SLAVE])}>"
        )

"""
slim_memory — Layered configuration.

Sources, lowest precedence first::

    defaults < config files < .env file < MEM_* environment < overrides

The facade settings live under the ``memory`` section::

    memory:
      prefix: app
      cached_keys: [settings]
      connections:
        - {driver: redis, host: 127.0.0.1, port: 6379}
        - {driver: redis, host: 127.0.0.2, port: 6379, role: slave}

Prefixed variables map onto that tree with ``__`` as the separator,
e.g. ``MEM_MEMORY__PREFIX=app`` or ``MEM_MEMORY__DISABLED=true``.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from glob import glob
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .faults import CacheConfigFault

logger = logging.getLogger("slim_memory.config")

DEFAULT_MEMORY_CONFIG: Dict[str, Any] = {
    "connections": [],
    "prefix": "",
    "cached_keys": [],
    "disabled": False,
    "pool_strategy": "sticky",
}

AUTO_DETECT_FILES = ("memory.yaml", "memory.yml", "memory.json")

NESTING_SEPARATOR = "__"


def _read_json(path: Path) -> Any:
    with path.open() as fh:
        return json.load(fh)


def _read_yaml(path: Path) -> Any:
    with path.open() as fh:
        return yaml.safe_load(fh)


_READERS: Dict[str, Callable[[Path], Any]] = {
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
}


def parse_env_value(raw: str) -> Any:
    """
    Interpret a string coming from the environment.

    ``true``/``yes`` and ``false``/``no`` become booleans, numeric
    strings become int or float, strings opening with ``{`` or ``[``
    are tried as JSON. Anything else stays a string.
    """
    lowered = raw.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False

    try:
        return float(raw) if "." in raw else int(raw)
    except ValueError:
        pass

    if raw[:1] in ("{", "["):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            pass
    return raw


def deep_merge(target: Dict[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``source`` into ``target`` in place; nested dicts merge key by key."""
    for key, value in source.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            deep_merge(current, value)
        else:
            target[key] = value
    return target


def nest_prefixed(variables: Mapping[str, Optional[str]], prefix: str) -> Dict[str, Any]:
    """
    Turn ``PREFIX_A__B=value`` pairs into ``{"a": {"b": value}}``.

    Names without the prefix and valueless entries are ignored.
    """
    tree: Dict[str, Any] = {}
    for name, raw in variables.items():
        if not name.startswith(prefix) or raw is None:
            continue

        *parents, leaf = name[len(prefix):].lower().split(NESTING_SEPARATOR)
        node = tree
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = parse_env_value(raw)
    return tree


class ConfigLoader:
    """
    Collects configuration from files and the environment.

    Usage::

        loader = ConfigLoader.load(paths=["config/*.yaml"], env_file=".env")
        mem = create_mem(build_mem_config(loader.get_memory_config()))
    """

    def __init__(self, env_prefix: str = "MEM_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "MEM_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Build a loader from every configured source.

        Args:
            paths: Config files or glob patterns, merged in order. When
                omitted the first of ``memory.yaml``, ``memory.yml``
                and ``memory.json`` found in the working directory is used.
            env_prefix: Prefix selecting environment variables
            env_file: Optional ``.env`` file read before the environment
            overrides: Values applied last

        Raises:
            CacheConfigFault: A matched file has an unsupported suffix.
        """
        loader = cls(env_prefix=env_prefix)

        if not paths:
            paths = [name for name in AUTO_DETECT_FILES if Path(name).exists()][:1]

        for path in loader._expand(paths):
            loader.merge(loader._read_file(path))

        if env_file and Path(env_file).exists():
            loader.merge(nest_prefixed(dotenv_values(env_file), env_prefix))

        loader.merge(nest_prefixed(os.environ, env_prefix))

        if overrides:
            loader.merge(overrides)
        return loader

    @staticmethod
    def _expand(patterns: Iterable[str]) -> List[Path]:
        matched: List[Path] = []
        for pattern in patterns:
            matched.extend(Path(p) for p in sorted(glob(pattern)))
        return matched

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        reader = _READERS.get(path.suffix)
        if reader is None:
            raise CacheConfigFault(f"unsupported config file type '{path.suffix}' ({path})")

        logger.debug(f"Reading configuration from {path}")
        return reader(path) or {}

    def merge(self, data: Mapping[str, Any]) -> None:
        deep_merge(self.config_data, data)

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a dotted path such as ``memory.prefix``."""
        node: Any = self.config_data
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_memory_config(self) -> Dict[str, Any]:
        """The ``memory`` section laid over ``DEFAULT_MEMORY_CONFIG``."""
        section = copy.deepcopy(DEFAULT_MEMORY_CONFIG)
        deep_merge(section, self.get("memory") or {})
        return section

    def to_dict(self) -> Dict[str, Any]:
        return self.config_data

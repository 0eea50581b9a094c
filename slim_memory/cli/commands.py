"""
slim_memory CLI commands.

Commands:
    check     Probe every configured connection.
    inspect   Show the effective configuration as JSON.
    get/set/delete/has/clear/tag   One-shot cache operations.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import click

from ..config import ConfigLoader
from ..faults import Fault
from ..providers import build_mem_config, create_mem
from ..service import Mem
from .colors import _CHECK, _CROSS, error, kv, section, success, warning


def load_memory_config(config_path: Optional[str] = None) -> dict:
    """Load the ``memory`` section from files and environment."""
    loader = ConfigLoader.load(paths=[config_path] if config_path else None)
    return loader.get_memory_config()


def build_mem(config_path: Optional[str] = None) -> Mem:
    return create_mem(build_mem_config(load_memory_config(config_path)))


def parse_value(raw: str) -> Any:
    """Interpret a command-line value as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def format_value(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def cmd_check(config_path: Optional[str] = None, verbose: bool = False) -> int:
    """
    Construct every configured backend once.

    Returns:
        Number of connections that failed their liveness probe.
    """
    config = load_memory_config(config_path)
    mem = create_mem(build_mem_config(config))

    section("Memory Configuration Check")
    kv("Prefix", repr(mem.prefix))
    kv("Pool strategy", mem.pool.strategy)
    kv("Cached keys", ", ".join(sorted(mem.cached_keys)) or "-")
    kv("Disabled", mem.disabled)
    click.echo()

    candidates = mem.pool.candidates()
    if not candidates:
        warning(f"  {_CROSS} No usable connections configured.")
        return 1

    failures = 0
    for role, factory in candidates:
        label = f"{factory.config.driver} {factory.config.host}:{factory.config.port} ({role.value})"
        try:
            backend = factory()
        except Fault as e:
            failures += 1
            error(f"  {_CROSS} {label}: {e.message}")
            if verbose:
                click.echo(format_value(e.to_dict()))
        else:
            backend.close()
            success(f"  {_CHECK} {label}")

    return failures


def cmd_inspect(config_path: Optional[str] = None, verbose: bool = False) -> None:
    """Display the effective memory config as JSON."""
    config = build_mem_config(load_memory_config(config_path))
    indent = 2 if verbose else None
    click.echo(json.dumps(config.to_dict(), indent=indent, default=str))

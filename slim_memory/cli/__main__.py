"""slim_memory CLI - Main Entry Point.

The `mem` command works against the connections configured in
memory.yaml / memory.json (or --config) and MEM_* environment
variables.

Commands:
    check    - Probe every configured connection
    inspect  - Show the effective configuration
    get      - Read a key
    set      - Write a key
    delete   - Delete a key
    has      - Check that a key exists on the master
    clear    - Flush the master backend
    tag      - Read or delete everything under a tag
"""

import logging
import sys
from typing import Optional

import click
from pymemcache.exceptions import MemcacheError
from redis.exceptions import RedisError

from . import __version__, __cli_name__
from .colors import _CHECK, _CROSS, error, success, warning
from ..faults import Fault

# Failures reported as a red message with exit status 1 instead of a traceback
CLIENT_ERRORS = (Fault, RedisError, MemcacheError, OSError)


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False), help='Config file (YAML or JSON)')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """Caching facade over Memcached and Redis.

    \b
    Quick start:
      mem check
      mem set greeting '"hello"' --ttl 60
      mem get greeting
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['verbose'] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _mem(ctx):
    from .commands import build_mem
    return build_mem(ctx.obj['config_path'])


def _fail(message: str, exc: Exception) -> None:
    error(f"  {_CROSS} {message}: {exc}")
    sys.exit(1)


# ============================================================================
# Commands
# ============================================================================

@cli.command('check')
@click.pass_context
def check(ctx):
    """
    Probe every configured connection.

    Examples:
      mem check
      mem -c prod.yaml check
    """
    from .commands import cmd_check

    try:
        failures = cmd_check(ctx.obj['config_path'], verbose=ctx.obj['verbose'])
    except CLIENT_ERRORS as e:
        _fail("check failed", e)
    if failures:
        sys.exit(1)


@cli.command('inspect')
@click.pass_context
def inspect(ctx):
    """Display the effective configuration as JSON."""
    from .commands import cmd_inspect

    try:
        cmd_inspect(ctx.obj['config_path'], verbose=ctx.obj['verbose'])
    except CLIENT_ERRORS as e:
        _fail("inspect failed", e)


@cli.command('get')
@click.argument('key')
@click.pass_context
def get(ctx, key: str):
    """
    Print the value stored under KEY as JSON.

    Exits with status 1 when the key is missing.
    """
    from .commands import format_value

    try:
        with _mem(ctx) as mem:
            value = mem.get(key)
    except CLIENT_ERRORS as e:
        _fail("get failed", e)
    if value is None:
        warning(f"  {_CROSS} '{key}' not found")
        sys.exit(1)
    click.echo(format_value(value))


@cli.command('set')
@click.argument('key')
@click.argument('value')
@click.option('--ttl', type=int, default=None, help='Time-to-live in seconds')
@click.option('--tag', type=str, default=None, help='Tag to register the key under')
@click.pass_context
def set_(ctx, key: str, value: str, ttl: Optional[int], tag: Optional[str]):
    """
    Store VALUE under KEY. VALUE is parsed as JSON when possible.

    Examples:
      mem set user:1 '{"name": "Ann"}' --ttl 300 --tag users
      mem set greeting hello
    """
    from .commands import parse_value

    try:
        with _mem(ctx) as mem:
            ok = mem.set(key, parse_value(value), ttl=ttl, tag=tag)
    except CLIENT_ERRORS as e:
        _fail("set failed", e)
    if not ok:
        error(f"  {_CROSS} backend rejected '{key}'")
        sys.exit(1)
    success(f"  {_CHECK} stored '{key}'")


@cli.command('delete')
@click.argument('key')
@click.pass_context
def delete(ctx, key: str):
    """Delete KEY."""
    try:
        with _mem(ctx) as mem:
            ok = mem.delete(key)
    except CLIENT_ERRORS as e:
        _fail("delete failed", e)
    if not ok:
        warning(f"  {_CROSS} '{key}' not deleted")
        sys.exit(1)
    success(f"  {_CHECK} deleted '{key}'")


@cli.command('has')
@click.argument('key')
@click.pass_context
def has(ctx, key: str):
    """Exit 0 when KEY exists on the master backend, 1 otherwise."""
    try:
        with _mem(ctx) as mem:
            found = mem.has(key)
    except CLIENT_ERRORS as e:
        _fail("has failed", e)
    click.echo("yes" if found else "no")
    if not found:
        sys.exit(1)


@cli.command('clear')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def clear(ctx, yes: bool):
    """Flush the entire master backend (not only the prefix)."""
    if not yes:
        click.confirm("Flush every key on the master backend?", abort=True)
    try:
        with _mem(ctx) as mem:
            mem.clear()
    except CLIENT_ERRORS as e:
        _fail("clear failed", e)
    success(f"  {_CHECK} cache cleared")


@cli.group('tag')
def tag():
    """Read or delete every key written under a tag."""
    pass


@tag.command('get')
@click.argument('name')
@click.pass_context
def tag_get(ctx, name: str):
    """Print every member of tag NAME as a JSON object."""
    from .commands import format_value

    try:
        with _mem(ctx) as mem:
            values = mem.get_by_tag(name)
    except CLIENT_ERRORS as e:
        _fail("tag get failed", e)
    click.echo(format_value(values))


@tag.command('delete')
@click.argument('name')
@click.pass_context
def tag_delete(ctx, name: str):
    """Delete every member of tag NAME and the tag itself."""
    try:
        with _mem(ctx) as mem:
            ok = mem.delete_by_tag(name)
    except CLIENT_ERRORS as e:
        _fail("tag delete failed", e)
    if not ok:
        warning(f"  {_CROSS} tag '{name}' not found")
        sys.exit(1)
    success(f"  {_CHECK} deleted tag '{name}'")


def main():
    """Entry point for `mem` command."""
    cli(obj={})


if __name__ == '__main__':
    main()

"""
slim_memory CLI.

The `mem` command-line interface for checking connections and poking
at cache contents.

Usage:
    mem check
    mem inspect
    mem get <key>
    mem set <key> <value> [--ttl N] [--tag T]
    mem tag delete <tag>
"""

__version__ = "1.0.0"
__cli_name__ = "mem"


def main():
    """Wrapper to avoid eager import of __main__ which causes warnings with -m."""
    from .__main__ import main as _main
    return _main()

"""
slim_memory CLI — coloured output helpers.

Styling goes through ``click.style`` so it is dropped automatically
when the output is not a terminal.
"""

from __future__ import annotations

import click

_L_H = "\u2500"   # ─
_CHECK = "\u2713"  # ✓
_CROSS = "\u2717"  # ✗

RULE_WIDTH = 60


def _echo(message: str, fg: str, *, err: bool = False, bold: bool = False) -> None:
    click.echo(click.style(message, fg=fg, bold=bold), err=err)


def success(message: str) -> None:
    _echo(message, "green")


def error(message: str) -> None:
    """Red, on stderr."""
    _echo(message, "red", err=True)


def warning(message: str) -> None:
    _echo(message, "yellow")


def section(title: str) -> None:
    """
    Heading followed by a rule filling ``RULE_WIDTH`` columns::

        ── Memory Configuration Check ─────────────────
    """
    fill = max(4, RULE_WIDTH - len(title) - 4)
    _echo(f"{_L_H * 2} {title} {_L_H * fill}", "cyan", bold=True)


def kv(label: str, value: object, width: int = 20) -> None:
    """Indented ``label: value`` line with values aligned at ``width``."""
    name = click.style(f"{label}:".ljust(width), fg="white")
    click.echo(f"  {name}{click.style(str(value), fg='cyan')}")

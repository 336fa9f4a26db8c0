"""Subcommand modules for typevault.

Provides register_commands() which uses deferred imports to keep
``typevault --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from typevault.commands.migrate import migrate
    from typevault.commands.schema import schema

    cli.add_command(schema)
    cli.add_command(migrate)

    # --- Standalone commands ---
    from typevault.commands.audit import audit

    cli.add_command(audit)

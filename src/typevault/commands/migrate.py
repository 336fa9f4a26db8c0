"""Command group: schema migration planning."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from typevault.commands._base import TvGroup

if TYPE_CHECKING:
    from typevault.commands._context import AppContext


@click.group(
    cls=TvGroup,
    examples="""\
  typevault migrate diff
  typevault migrate diff --against old-schema.json
  typevault migrate diff --to-version 2.0.0
  typevault migrate snapshot""",
)
def migrate() -> None:
    """Plan schema migrations."""


@migrate.command()
@click.option(
    "--against",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Compare with this schema file instead of the applied snapshot.",
)
@click.option("--to-version", default=None, help="Version label for the current schema.")
@click.pass_obj
def diff(app: AppContext, against: Path | None, to_version: str | None) -> None:
    """Show what changed since the applied schema snapshot."""
    from typevault.services.migrate import MigrationService

    app.emit(MigrationService(app.vault).diff(against=against, to_version=to_version))


@migrate.command()
@click.pass_obj
def snapshot(app: AppContext) -> None:
    """Record the current schema as the applied baseline."""
    from typevault.services.migrate import MigrationService

    app.emit(MigrationService(app.vault).snapshot())

"""Command group: schema introspection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from typevault.commands._base import TvGroup

if TYPE_CHECKING:
    from typevault.commands._context import AppContext


@click.group(
    cls=TvGroup,
    examples="""\
  typevault schema list
  typevault schema show task
  typevault schema validate""",
)
def schema() -> None:
    """Inspect the resolved type schema."""


@schema.command("list")
@click.pass_obj
def list_types(app: AppContext) -> None:
    """List all types with their parents and directories."""
    from typevault.services.schema import SchemaService

    app.emit(SchemaService(app.vault).list_types())


@schema.command(examples="  typevault schema show task\n  typevault -v schema show task")
@click.argument("type_name")
@click.pass_obj
def show(app: AppContext, type_name: str) -> None:
    """Show a type's merged fields, order, and ownership."""
    from typevault.services.schema import SchemaService

    app.emit(SchemaService(app.vault).show_type(type_name))


@schema.command()
@click.pass_obj
def validate(app: AppContext) -> None:
    """Check the schema for structural errors."""
    from typevault.services.schema import SchemaService

    app.emit(SchemaService(app.vault).validate())

"""Command: audit documents against the schema."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from typevault.commands._base import IssueCodeParam, TvCommand

if TYPE_CHECKING:
    from typevault.commands._context import AppContext


@click.command(
    cls=TvCommand,
    examples="""\
  typevault audit
  typevault audit task
  typevault audit --path "Projects/*"
  typevault audit --only stale-reference
  typevault audit --strict --allow-field created
  typevault --json audit --errors-only""",
)
@click.argument("type_name", required=False)
@click.option("--path", "path_pattern", default=None, help="Only audit paths matching a glob or substring.")
@click.option("--strict/--no-strict", default=None, help="Treat unknown fields as errors.")
@click.option("--only", type=IssueCodeParam(), default=None, help="Only report this issue code.")
@click.option("--ignore", type=IssueCodeParam(), default=None, help="Suppress this issue code.")
@click.option("--allow-field", "allowed_fields", multiple=True, help="Extra frontmatter key to allow.")
@click.option("--errors-only", is_flag=True, help="Hide warnings.")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel document checks.")
@click.pass_obj
def audit(
    app: AppContext,
    type_name: str | None,
    path_pattern: str | None,
    strict: bool | None,
    only: str | None,
    ignore: str | None,
    allowed_fields: tuple[str, ...],
    errors_only: bool,
    workers: int | None,
) -> None:
    """Audit documents for schema violations (read-only).

    Exits with status 1 when any error-severity issue is reported.
    """
    from typevault.services.audit import AuditService

    result = AuditService(app.vault).audit(
        type_name=type_name,
        path_pattern=path_pattern,
        strict=strict,
        only=only,
        ignore=ignore,
        allowed_fields=allowed_fields,
        min_severity="error" if errors_only else "warning",
        workers=workers,
    )
    errors = result.data.get("summary", {}).get("total_errors", 0)
    app.emit(result, exit_code=1 if errors else 0)

"""AppContext: the object every typevault subcommand receives.

The root group stores it on ``ctx.obj``; commands take it with
``@click.pass_obj``. It owns logging setup, the lazily opened
:class:`Vault`, and the single place results are written out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from typevault.config.logging import bind_vault_context, configure_logging
from typevault.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from typevault.config.settings import TypevaultSettings
    from typevault.infrastructure.vault import Vault
    from typevault.services.result import ServiceResult


class AppContext:
    """Per-invocation state shared by all subcommands."""

    def __init__(self, settings: TypevaultSettings) -> None:
        self.settings = settings
        self.output = OutputSettings(
            json_output=settings.json_output,
            quiet=settings.quiet,
            verbose=settings.verbose,
        )
        self._vault: Vault | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        bind_vault_context(vault=settings.vault.name, root=str(settings.vault_root))

    @property
    def vault(self) -> Vault:
        """The vault, opened on first use."""
        if self._vault is None:
            from typevault.infrastructure.vault import Vault

            self._vault = Vault(self.settings)
        return self._vault

    def emit(self, result: ServiceResult, *, exit_code: int = 0) -> None:
        """Write *result* and end the command with the right status.

        Failed results go to stderr and exit 1. Successful ones go to
        stdout, with their warnings on stderr unless the output is JSON
        (the payload already carries them); a nonzero *exit_code* then
        ends the process with that status.
        """
        text = format_result(result, settings=self.output)
        if not result.ok:
            click.echo(text, err=True)
            raise SystemExit(1)

        click.echo(text)
        if not self.output.json_output:
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
        if exit_code:
            raise SystemExit(exit_code)

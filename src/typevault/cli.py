"""Entry point: the ``typevault`` click group.

Global flags are folded into :class:`TypevaultSettings` before any
subcommand runs; subcommands receive an :class:`AppContext`.
"""

from __future__ import annotations

from pathlib import Path

import click

from typevault import __version__
from typevault.commands import register_commands
from typevault.commands._context import AppContext
from typevault.config.settings import TypevaultSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="typevault")
@click.option("--json", "json_output", is_flag=True, help="Emit results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only paths or names.")
@click.option("-v", "--verbose", is_flag=True, help="Show issue details and debug logs.")
@click.option("--log-json", is_flag=True, help="Write logs to stderr as JSON lines.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Use this typevault.toml instead of searching upwards.",
)
@click.option(
    "--vault",
    "vault_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Vault directory (default: the config file's directory, else CWD).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    vault_root: Path | None,
) -> None:
    """typevault: schema resolution, auditing and migration planning for markdown vaults."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return
    ctx.obj = AppContext(
        TypevaultSettings.from_cli(
            config_path=config_path,
            vault_root=vault_root,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
        )
    )


register_commands(cli)

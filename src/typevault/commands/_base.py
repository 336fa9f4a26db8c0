"""Click building blocks shared by the typevault commands.

``TvCommand`` and ``TvGroup`` take an ``examples=`` string. When it is
given they grow an eager ``--examples`` flag that prints the text and
exits, so ``--help`` stays short. ``IssueCodeParam`` turns audit issue
codes on the command line into validated strings.
"""

from __future__ import annotations

from typing import Any

import click
from click.shell_completion import CompletionItem

from typevault.domain.issues import IssueCode
from typevault.domain.matching import suggest_option


def _print_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"Examples for '{ctx.command_path}':\n")
    click.echo(getattr(ctx.command, "examples", ""))
    ctx.exit(0)


class _ExamplesMixin:
    examples: str | None

    def _init_examples(self, params: list[click.Parameter], examples: str | None) -> None:
        self.examples = examples
        if examples:
            params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    expose_value=False,
                    is_eager=True,
                    callback=_print_examples,
                    help="Show usage examples and exit.",
                )
            )


class TvCommand(_ExamplesMixin, click.Command):
    """A command that may carry usage examples."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(self.params, examples)


class TvGroup(_ExamplesMixin, click.Group):
    """A group that may carry usage examples.

    Subcommands declared with ``@group.command(...)`` are ``TvCommand``
    and so accept ``examples=`` too.
    """

    command_class = TvCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(self.params, examples)


class IssueCodeParam(click.ParamType):
    """An audit issue code such as ``missing-required``."""

    name = "code"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> str:
        if isinstance(value, IssueCode):
            return value.value
        text = str(value).strip().lower()
        codes = [c.value for c in IssueCode]
        if text in codes:
            return text
        suggestion = suggest_option(text, codes)
        hint = f" Did you mean '{suggestion}'?" if suggestion else ""
        self.fail(f"unknown issue code {value!r}.{hint}", param, ctx)

    def shell_complete(
        self, ctx: click.Context, param: click.Parameter, incomplete: str
    ) -> list[CompletionItem]:
        return [CompletionItem(c.value) for c in IssueCode if c.value.startswith(incomplete)]

"""Rich consoles for rendering results into strings.

Renderers draw on an in-memory console and hand back text, so the CLI
decides where it goes. The ``tv.*`` styles name the roles used in
output: paths, type names, issue codes, severities and plan lines.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

TYPEVAULT_THEME = Theme(
    {
        "tv.ok": "bold green",
        "tv.error": "bold red",
        "tv.warning": "bold yellow",
        "tv.op": "bold cyan",
        "tv.key": "dim",
        "tv.path": "bold blue",
        "tv.type": "magenta",
        "tv.code": "cyan",
        "tv.hint": "dim italic",
        "tv.add": "green",
        "tv.remove": "red",
    }
)

_SEVERITY_STYLES: dict[str, str] = {
    "error": "tv.error",
    "warning": "tv.warning",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """A themed console writing into a fresh buffer.

    Colour is dropped automatically when not attached to a terminal.
    *width* defaults to 120 so tables do not wrap in captured output.
    """
    return Console(
        file=StringIO(),
        theme=TYPEVAULT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Everything written to a console made by :func:`create_console`."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_severity(severity: str) -> str:
    """Return the Rich style name for an issue severity."""
    return _SEVERITY_STYLES.get(severity, "")

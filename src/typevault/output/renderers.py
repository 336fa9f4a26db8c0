"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from typevault.output.console import create_console, get_output, style_for_severity

if TYPE_CHECKING:
    from rich.console import Console

    from typevault.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if result.error is not None:
        return f"ERROR: {result.op}: {result.error.message}"

    if result.op == "audit":
        return "\n".join(f["relative_path"] for f in result.data.get("files", []))

    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(str(item.get("name", "")) for item in items if isinstance(item, dict))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="tv.ok")
    op = Text(f"  {result.op}", style="tv.op")
    console.print(label, op, sep="")


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="tv.key")
    if key in ("path", "output_dir"):
        v = Text(str(value), style="tv.path")
    elif key in ("name", "parent", "type"):
        v = Text(str(value), style="tv.type")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    assert err is not None
    label = Text("ERROR", style="tv.error")
    op = Text(f"  {result.op}", style="tv.op")
    console.print(label, op, Text(": "), Text(err.message), sep="")

    if verbose and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Audit ─────────────────────────────────────────────────────────────


def _render_audit(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render audit results grouped by file."""
    files = result.data.get("files", [])
    summary = result.data.get("summary", {})

    if not files:
        checked = summary.get("files_checked", 0)
        console.print(f"[tv.ok]OK[/tv.ok]  No issues found in {checked} files.")
        return

    for entry in files:
        console.print(f"\n[tv.path]{escape(entry['relative_path'])}[/tv.path]")
        for issue in entry.get("issues", []):
            sev = str(issue.get("severity", "warning"))
            style = style_for_severity(sev)
            prefix = f"[{style}]{sev}[/{style}]" if style else sev
            code = f"[tv.code]{issue.get('code', '')}[/tv.code]"
            fix = " [tv.hint](fixable)[/tv.hint]" if issue.get("auto_fixable") else ""
            console.print(f"  {prefix} {code}: {escape(str(issue.get('message', '')))}{fix}")
            similar = issue.get("similar_files") or []
            if similar:
                console.print(f"    [tv.hint]similar: {escape(', '.join(similar))}[/tv.hint]")
            if verbose:
                for key in ("expected", "suggestion", "owner_path", "cycle_path"):
                    if issue.get(key) not in (None, [], ""):
                        console.print(Text(f"    {key}: {issue[key]}", style="dim"))

    console.print(
        f"\n{summary.get('total_errors', 0)} errors, {summary.get('total_warnings', 0)} warnings "
        f"in {len(files)} of {summary.get('files_checked', 0)} files"
    )


# ── Schema ────────────────────────────────────────────────────────────


def _render_schema_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the type list as a table."""
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Type", style="tv.type", no_wrap=True)
    table.add_column("Extends")
    table.add_column("Directory", style="tv.path")
    table.add_column("Fields", justify="right")
    for item in items:
        table.add_row(
            str(item.get("name", "")),
            str(item.get("parent") or ""),
            str(item.get("output_dir", "")),
            str(item.get("fields", 0)),
        )
    console.print(table)
    version = result.data.get("schema_version")
    suffix = f" (schema {version})" if version else ""
    console.print(f"\n{result.data.get('count', len(items))} types{suffix}")


def _render_schema_show(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one resolved type with its fields."""
    d = result.data
    _status_line(console, result)
    for key in ("name", "parent", "output_dir", "plural"):
        if d.get(key):
            _field(console, key, d[key])
    if d.get("ancestors"):
        _field(console, "ancestors", " -> ".join(d["ancestors"]))
    if d.get("children"):
        _field(console, "children", ", ".join(d["children"]))
    if d.get("recursive"):
        _field(console, "recursive", True)

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Field", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Required")
    table.add_column("Details")
    if verbose:
        table.add_column("From", style="dim")
    for f in d.get("fields", []):
        details: list[str] = []
        if "options" in f:
            details.append("options: " + ", ".join(f["options"]))
        if "source" in f:
            details.append("source: " + ", ".join(f["source"]))
        if "default" in f:
            details.append(f"default: {f['default']}")
        if "value" in f:
            details.append(f"value: {f['value']}")
        if f.get("owned"):
            details.append("owned")
        row = [str(f["name"]), str(f["kind"]), "yes" if f.get("required") else "", "; ".join(details)]
        if verbose:
            row.append(str(f.get("origin", "")))
        table.add_row(*row)
    console.print(table)

    for owner in d.get("owned_by", []):
        console.print(Text(f"  owned by {owner['owner_type']}.{owner['field']}", style="tv.hint"))
    for owned in d.get("owns", []):
        console.print(Text(f"  owns {owned['child_type']} via {owned['field']}", style="tv.hint"))


# ── Migration ─────────────────────────────────────────────────────────


def _render_migrate_diff(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a migration plan with deterministic/non-deterministic sections."""
    d = result.data
    plan = d.get("plan", {})
    _status_line(console, result)
    _field(console, "from_version", plan.get("from_version", ""))
    _field(console, "suggested_version", d.get("suggested_version", ""))

    if not plan.get("has_changes"):
        console.print("\nNo changes detected.")
        return
    if d.get("deterministic"):
        console.print("\n[bold]Deterministic changes[/bold] (can be applied automatically)")
        for line in d["deterministic"]:
            console.print(Text(f"  + {line}", style="tv.add"))
    if d.get("non_deterministic"):
        console.print("\n[bold]Non-deterministic changes[/bold] (require review)")
        for line in d["non_deterministic"]:
            console.print(Text(f"  - {line}", style="tv.remove"))


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "audit": _render_audit,
    "schema_list": _render_schema_list,
    "schema_show": _render_schema_show,
    "schema_validate": _render_generic,
    "migrate_diff": _render_migrate_diff,
    "migrate_snapshot": _render_generic,
}

"""YAML frontmatter parsing and rendering.

Parsing uses ruamel.yaml in round-trip mode and then converts the result to
plain Python containers, so audit records never carry ruamel node types.
"""

from __future__ import annotations

from datetime import date, datetime
from io import StringIO
from typing import Any

from ruamel.yaml import YAML

_FRONTMATTER_DELIMITER = "---"


def _new_yaml() -> YAML:
    """Create a fresh round-trip YAML parser.

    A new instance per call avoids corrupted internal emitter state from
    propagating across operations (ruamel.yaml's YAML object is stateful
    and a failed dump can leave the singleton in a broken state).
    """
    y = YAML()
    y.preserve_quotes = True
    y.default_flow_style = False
    return y


def to_plain(value: Any) -> Any:
    """Convert ruamel containers and scalar subclasses to builtin types."""
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, str):
        return str(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, datetime):
        return datetime.fromisoformat(value.isoformat())
    if isinstance(value, date):
        return date(value.year, value.month, value.day)
    return value


def parse_frontmatter(content: str) -> tuple[dict[str, Any] | None, str]:
    """Split markdown *content* into ``(frontmatter, body)``.

    Returns ``(None, content)`` when the file has no frontmatter block.

    Raises:
        ruamel.yaml.YAMLError: if the block is not valid YAML.
        ValueError: if the block is valid YAML but not a mapping.
    """
    normalized = content.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return None, content

    end_idx: int | None = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            end_idx = i
            break
    if end_idx is None:
        return None, content

    yaml_block = "\n".join(lines[1:end_idx])
    body = "\n".join(lines[end_idx + 1 :])
    if body.startswith("\n"):
        body = body[1:]

    loaded = _new_yaml().load(yaml_block)
    if loaded is None:
        return {}, body
    if not isinstance(loaded, dict):
        msg = f"frontmatter must be a mapping, got {type(loaded).__name__}"
        raise ValueError(msg)
    return to_plain(loaded), body


def render_frontmatter(frontmatter: dict[str, Any], body: str = "") -> str:
    """Render frontmatter + body back to a markdown string.

    typevault never rewrites notes; this is the inverse of
    :func:`parse_frontmatter` for building fixture vaults.
    """
    stream = StringIO()
    _new_yaml().dump(frontmatter, stream)
    return f"{_FRONTMATTER_DELIMITER}\n{stream.getvalue()}{_FRONTMATTER_DELIMITER}\n{body}"

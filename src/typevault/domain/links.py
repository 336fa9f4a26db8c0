"""Link parsing for relation field values.

Pure functions, no infrastructure dependencies. Relation values are
rendered either as wikilinks (``[[Target]]``, ``[[Target|Alias]]``,
``[[Target#Heading]]``) or as markdown links (``[Target](Target.md)``),
optionally wrapped in double quotes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from typevault.domain.schema import LinkFormat

# [[Title]] or [[Title|Display Text]]: captures content between brackets.
_WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]]+)\]\]")
_WIKILINK_FULL = re.compile(r"^\[\[.+\]\]$")
_WIKILINK_TARGET = re.compile(r"^\[\[([^\]|#]+)")
_MARKDOWN_FULL = re.compile(r"^\[.+\]\(.+\.md\)$")
_MARKDOWN_TARGET = re.compile(r"^\[.+\]\((.+)\.md\)$")
_MARKDOWN_PATTERN = re.compile(r"\[[^\]]+\]\(([^)]+)\)")


@dataclass(frozen=True)
class WikiLink:
    """A wikilink extracted from a string."""

    raw: str  # target portion between [[ ]]
    display: str | None = None  # alias after | if present


def _unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def is_wikilink(value: str) -> bool:
    return bool(_WIKILINK_FULL.match(_unquote(value)))


def is_markdown_link(value: str) -> bool:
    return bool(_MARKDOWN_FULL.match(_unquote(value)))


def matches_link_format(value: str, link_format: LinkFormat) -> bool:
    """Whether *value* is rendered in the vault's configured link style."""
    if link_format == LinkFormat.MARKDOWN:
        return is_markdown_link(value)
    return is_wikilink(value)


def wikilink_target(value: str) -> str | None:
    """Target of a wikilink without heading or alias, else None."""
    match = _WIKILINK_TARGET.match(_unquote(value))
    return match.group(1).strip() if match else None


def markdown_link_target(value: str) -> str | None:
    """Target of a markdown link without the ``.md`` extension, else None."""
    match = _MARKDOWN_TARGET.match(_unquote(value))
    return match.group(1) if match else None


def link_target(value: str) -> str | None:
    """Extract the relation target from a single rendered link."""
    if not value:
        return None
    if is_wikilink(value):
        target = wikilink_target(value)
        if target:
            return target
    if is_markdown_link(value):
        return markdown_link_target(value)
    return None


def extract_wikilinks(text: str) -> list[WikiLink]:
    """Extract all ``[[wikilinks]]`` embedded anywhere in *text*."""
    results: list[WikiLink] = []
    for match in _WIKILINK_PATTERN.finditer(text):
        parts = match.group(1).split("|", 1)
        target = parts[0].split("#", 1)[0].strip()
        display = parts[1].strip() if len(parts) > 1 else None
        results.append(WikiLink(raw=target, display=display))
    return results


def _targets_in_string(text: str) -> list[str]:
    targets = [link.raw for link in extract_wikilinks(text) if link.raw]
    for match in _MARKDOWN_PATTERN.finditer(text):
        href = match.group(1)
        targets.append(href[:-3] if href.endswith(".md") else href)
    if not targets:
        single = link_target(text)
        if single:
            targets.append(single)
    return targets


def extract_link_targets(value: Any) -> list[str]:
    """Collect every link target from a frontmatter value.

    Accepts a string or a list of strings; other values yield nothing.
    """
    if isinstance(value, str):
        return _targets_in_string(value)
    if isinstance(value, list):
        found: list[str] = []
        for item in value:
            if isinstance(item, str):
                found.extend(_targets_in_string(item))
        return found
    return []


def to_wikilink(value: str) -> str:
    """Render *value* as a wikilink, converting markdown links."""
    if is_wikilink(value):
        return value
    name = markdown_link_target(value) if is_markdown_link(value) else None
    return f"[[{name or value}]]"


def to_markdown_link(value: str) -> str:
    """Render *value* as a markdown link, converting wikilinks."""
    if is_markdown_link(value):
        return value
    name = wikilink_target(value) if is_wikilink(value) else None
    name = name or value
    return f"[{name}]({name}.md)"

"""Markdown discovery and document loading.

INVARIANT: Files are truth. Nothing here writes to the vault; the audit
only ever reads documents and reports on them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from ruamel.yaml.error import YAMLError

from typevault.domain.audit import AuditDocument
from typevault.infrastructure.frontmatter import parse_frontmatter

logger = logging.getLogger(__name__)

# Directories never scanned, regardless of configuration.
_SKIP_DIRS = frozenset({".typevault", ".obsidian", ".git", ".trash"})


def find_markdown_files(vault_root: Path, *, ignored: Iterable[str] = ()) -> list[Path]:
    """Discover every ``.md`` file under *vault_root*.

    Skips hidden tool directories plus any vault-relative directory listed in
    *ignored* (and everything nested below it). Returns paths sorted by their
    vault-relative POSIX form.
    """
    ignored_prefixes = tuple(p.strip("/") for p in ignored if p.strip("/"))
    results: list[Path] = []
    for path in vault_root.rglob("*.md"):
        if not path.is_file():
            continue
        rel = path.relative_to(vault_root)
        if any(part in _SKIP_DIRS for part in rel.parts[:-1]):
            continue
        rel_posix = rel.as_posix()
        if any(rel_posix.startswith(f"{prefix}/") for prefix in ignored_prefixes):
            continue
        results.append(path)
    return sorted(results, key=lambda p: p.relative_to(vault_root).as_posix())


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def load_document(vault_root: Path, path: Path) -> AuditDocument:
    """Read one markdown file into an :class:`AuditDocument`.

    Unreadable or malformed frontmatter is captured as ``parse_error`` so a
    single bad file never aborts a scan.
    """
    relative = path.relative_to(vault_root).as_posix()
    try:
        content = path.read_text(encoding="utf-8")
        frontmatter, _body = parse_frontmatter(content)
    except (OSError, UnicodeDecodeError, YAMLError, ValueError) as exc:
        logger.debug("Frontmatter parse failed for %s", relative, exc_info=True)
        return AuditDocument(relative_path=relative, parse_error=_first_line(exc))
    return AuditDocument(relative_path=relative, frontmatter=frontmatter)


def load_documents(vault_root: Path, *, ignored: Iterable[str] = ()) -> list[AuditDocument]:
    """Discover and load every markdown document in the vault."""
    return [load_document(vault_root, p) for p in find_markdown_files(vault_root, ignored=ignored)]

"""Shared pytest fixtures and test helpers for typevault tests."""

from __future__ import annotations

import copy
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from typevault.config.settings import TypevaultSettings
from typevault.domain.resolver import ResolvedSchema, resolve_schema
from typevault.domain.schema import SchemaDocument
from typevault.infrastructure.frontmatter import render_frontmatter
from typevault.infrastructure.vault import Vault

# A small vault schema exercising inheritance, ownership, recursion and
# every scalar prompt kind.
BASE_SCHEMA: dict[str, Any] = {
    "version": 2,
    "schemaVersion": "1.0.0",
    "config": {"link_format": "wikilink"},
    "types": {
        "objective": {
            "output_dir": "Objectives",
            "fields": {
                "status": {
                    "prompt": "select",
                    "options": ["raw", "backlog", "in-flight", "done"],
                    "default": "raw",
                    "required": True,
                },
            },
            "field_order": ["status"],
        },
        "task": {
            "extends": "objective",
            "output_dir": "Objectives/Tasks",
            "fields": {
                "milestone": {"prompt": "relation", "source": "milestone"},
                "due": {"prompt": "date"},
                "effort": {"prompt": "number"},
                "blocked": {"prompt": "boolean"},
                "labels": {"prompt": "list"},
            },
        },
        "milestone": {
            "extends": "objective",
            "output_dir": "Objectives/Milestones",
            "recursive": True,
        },
        "project": {
            "output_dir": "Projects",
            "fields": {
                "status": {"prompt": "select", "options": ["planning", "active", "done"], "required": True},
                "research": {"prompt": "relation", "source": "research", "multiple": True, "owned": True},
            },
        },
        "research": {
            "output_dir": "Research",
            "fields": {"topic": {"prompt": "text"}},
        },
        "idea": {
            "output_dir": "Ideas",
            "fields": {"related": {"prompt": "relation", "source": "any", "multiple": True}},
        },
    },
}


def schema_data(**overrides: Any) -> dict[str, Any]:
    """A deep copy of the shared schema with top-level keys replaced."""
    data = copy.deepcopy(BASE_SCHEMA)
    data.update(overrides)
    return data


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def schema_document() -> SchemaDocument:
    return SchemaDocument.model_validate(schema_data())


@pytest.fixture
def resolved_schema(schema_document: SchemaDocument) -> ResolvedSchema:
    return resolve_schema(schema_document)


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    """Temporary vault directory with the shared schema installed.

    This is the single source of truth for the vault directory layout.
    All vault-related fixtures (vault, _isolated_vault) build on this.
    """
    schema_dir = tmp_path / ".typevault"
    schema_dir.mkdir()
    (schema_dir / "schema.json").write_text(json.dumps(schema_data(), indent=2), encoding="utf-8")
    for directory in ("Objectives/Tasks", "Objectives/Milestones", "Projects", "Research", "Ideas"):
        (tmp_path / directory).mkdir(parents=True)
    return tmp_path


@pytest.fixture
def vault(vault_root: Path) -> Vault:
    """Vault over the temp directory with default settings."""
    settings = TypevaultSettings.from_cli(vault_root=vault_root)
    return Vault(settings)


@pytest.fixture
def _isolated_vault(vault_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp vault root so the CLI picks it up.

    Use via ``@pytest.mark.usefixtures("_isolated_vault")`` on command test
    classes. Tests that need the path can also request ``vault_root``.
    """
    monkeypatch.delenv("TYPEVAULT_CONFIG", raising=False)
    monkeypatch.chdir(vault_root)


@pytest.fixture
def write_note(vault_root: Path) -> Callable[..., Path]:
    """Write a markdown note with frontmatter into the temp vault."""

    def _write(relative_path: str, frontmatter: dict[str, Any], body: str = "") -> Path:
        path = vault_root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_frontmatter(frontmatter, body), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_schema() -> Callable[..., ResolvedSchema]:
    """Resolve a variant of the shared schema with extra or replaced types."""

    def _make(types: dict[str, Any] | None = None, **overrides: Any) -> ResolvedSchema:
        data = schema_data(**overrides)
        if types:
            data["types"].update(types)
        return resolve_schema(SchemaDocument.model_validate(data))

    return _make

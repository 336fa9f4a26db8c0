"""Vault: read access to a vault's schema and documents.

The Vault is the single dependency injected into every service. It knows
where the schema and its applied snapshot live, loads and resolves the
schema once per invocation, and scans markdown documents on demand.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from typevault.domain.resolver import ResolvedSchema, resolve_schema
from typevault.infrastructure.filesystem import load_documents
from typevault.infrastructure.schema_store import load_schema_document, write_schema_document

if TYPE_CHECKING:
    from typevault.config.settings import TypevaultSettings
    from typevault.domain.audit import AuditDocument
    from typevault.domain.schema import SchemaDocument

logger = logging.getLogger(__name__)


class Vault:
    """A vault rooted at ``settings.vault_root``."""

    def __init__(self, settings: TypevaultSettings) -> None:
        self._settings = settings
        self._document: SchemaDocument | None = None
        self._schema: ResolvedSchema | None = None

    @property
    def root(self) -> Path:
        return self._settings.vault_root

    @property
    def settings(self) -> TypevaultSettings:
        return self._settings

    @property
    def schema_path(self) -> Path:
        return self._settings.schema_path

    @property
    def snapshot_path(self) -> Path:
        return self._settings.snapshot_path

    def schema_document(self) -> SchemaDocument:
        """The raw schema document (loaded once).

        Raises:
            SchemaLoadError: if the schema file is missing or invalid.
        """
        if self._document is None:
            self._document = load_schema_document(self.schema_path)
        return self._document

    def schema(self) -> ResolvedSchema:
        """The resolved schema (resolved once).

        Raises:
            SchemaLoadError: if the schema file is missing or invalid.
            SchemaResolutionError: if the schema is structurally invalid.
        """
        if self._schema is None:
            self._schema = resolve_schema(self.schema_document())
            logger.debug("Resolved %d types from %s", len(self._schema.types), self.schema_path)
        return self._schema

    def ignored_directories(self) -> list[str]:
        """Directories excluded from scanning, from config and schema."""
        ignored = list(self._settings.audit.ignored_directories)
        if self._document is not None:
            ignored.extend(d for d in self._document.audit.ignored_directories if d not in ignored)
        return ignored

    def documents(self) -> list[AuditDocument]:
        """Load every markdown document outside the ignored directories."""
        docs = load_documents(self.root, ignored=self.ignored_directories())
        logger.debug("Loaded %d documents from %s", len(docs), self.root)
        return docs

    def load_snapshot(self, path: Path | None = None) -> SchemaDocument | None:
        """The last applied schema snapshot, or None when none was recorded.

        Raises:
            SchemaLoadError: if the snapshot exists but is invalid.
        """
        target = path or self.snapshot_path
        if path is None and not target.is_file():
            return None
        return load_schema_document(target)

    def write_snapshot(self) -> Path:
        """Record the current schema as the applied baseline."""
        write_schema_document(self.snapshot_path, self.schema_document())
        return self.snapshot_path

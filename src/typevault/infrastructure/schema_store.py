"""Reading schema documents from disk.

Syntax and shape validation happen here (JSON + pydantic); cross-reference
validation is left to :mod:`typevault.domain.resolver`.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from typevault.domain.schema import SchemaDocument


class SchemaLoadError(Exception):
    """A schema file is missing, unreadable, or does not match the model."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


def load_schema_document(path: Path) -> SchemaDocument:
    """Parse and validate the schema document at *path*.

    Raises:
        SchemaLoadError: if the file is missing, is not JSON, or fails
            model validation.
    """
    if not path.is_file():
        msg = f"Schema file not found: {path}"
        raise SchemaLoadError(msg, path=path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {path}: {exc}"
        raise SchemaLoadError(msg, path=path) from exc
    try:
        return SchemaDocument.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid schema in {path}: {exc.error_count()} validation error(s)\n{exc}"
        raise SchemaLoadError(msg, path=path) from exc


def write_schema_document(path: Path, document: SchemaDocument) -> None:
    """Write *document* as indented JSON (used for snapshots)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document.to_dict(), indent=2) + "\n", encoding="utf-8")

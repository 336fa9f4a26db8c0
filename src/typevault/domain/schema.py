"""Raw schema document models.

These models mirror the on-disk schema document one-to-one. They carry no
inheritance logic: :mod:`typevault.domain.resolver` turns a
:class:`SchemaDocument` into the merged, queryable model.

Dumping with ``by_alias=True, exclude_unset=True`` reproduces the input
structure, so documents round-trip through JSON unchanged.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

ROOT_TYPE = "meta"
ANY_SOURCE = "any"


class FieldPrompt(StrEnum):
    """How a field's value is collected."""

    TEXT = "text"
    SELECT = "select"
    LIST = "list"
    DATE = "date"
    RELATION = "relation"
    BOOLEAN = "boolean"
    NUMBER = "number"


class LinkFormat(StrEnum):
    """Rendering style for relation values."""

    WIKILINK = "wikilink"
    MARKDOWN = "markdown"


class FieldDef(BaseModel):
    """A single frontmatter field declaration."""

    model_config = {"frozen": True}

    prompt: FieldPrompt | None = None
    value: str | None = None
    options: list[str] | None = None
    source: str | list[str] | None = None
    filter: dict[str, Any] | None = None
    required: bool = False
    default: str | int | float | bool | list[str] | None = None
    list_format: str | None = None
    label: str | None = None
    multiple: bool = False
    owned: bool = False

    @property
    def kind(self) -> str:
        """``"static"`` for fixed values, otherwise the prompt name."""
        if self.value is not None and self.prompt is None:
            return "static"
        return str(self.prompt or FieldPrompt.TEXT)

    @property
    def is_relation(self) -> bool:
        return self.prompt == FieldPrompt.RELATION

    @property
    def sources(self) -> list[str]:
        """The declared source types as a list (empty when unconstrained)."""
        if self.source is None:
            return []
        if isinstance(self.source, str):
            return [self.source]
        return list(self.source)

    @property
    def is_list_valued(self) -> bool:
        return self.prompt == FieldPrompt.LIST or self.multiple


class BodySection(BaseModel):
    """A markdown body section template."""

    model_config = {"frozen": True}

    title: str
    level: int = 2
    content_type: str = "paragraphs"
    prompt: str | None = None
    prompt_label: str | None = None
    children: list[BodySection] = Field(default_factory=list)


class TypeDef(BaseModel):
    """A raw type declaration, before inheritance is applied."""

    model_config = {"frozen": True}

    extends: str | None = None
    fields: dict[str, FieldDef] = Field(default_factory=dict)
    field_order: list[str] | None = None
    body_sections: list[BodySection] | None = None
    recursive: bool = False
    output_dir: str | None = None
    filename: str | None = None
    plural: str | None = None


class SchemaConfig(BaseModel):
    """Vault-wide rendering settings stored in the schema."""

    model_config = {"frozen": True}

    link_format: LinkFormat = LinkFormat.WIKILINK
    date_format: str = "YYYY-MM-DD"
    open_with: str | None = None


class SchemaAuditConfig(BaseModel):
    """Audit settings stored in the schema."""

    model_config = {"frozen": True}

    ignored_directories: list[str] = Field(default_factory=list)
    allowed_extra_fields: list[str] = Field(default_factory=list)


class SchemaDocument(BaseModel):
    """The complete schema document."""

    model_config = {"frozen": True, "populate_by_name": True}

    json_schema: str | None = Field(default=None, alias="$schema")
    version: int = 2
    schema_version: str | None = Field(default=None, alias="schemaVersion")
    config: SchemaConfig = Field(default_factory=SchemaConfig)
    types: dict[str, TypeDef] = Field(default_factory=dict)
    audit: SchemaAuditConfig = Field(default_factory=SchemaAuditConfig)

    def to_dict(self) -> dict[str, Any]:
        """Serialise back to the on-disk shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)

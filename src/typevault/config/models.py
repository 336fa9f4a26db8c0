"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, typevault.toml only contains
overrides. A fresh vault needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- typevault.toml sections ---


class VaultConfig(BaseModel):
    """[vault] section."""

    model_config = {"frozen": True}

    name: str = "my-vault"


class PathsConfig(BaseModel):
    """[paths] section.

    Paths are relative to the vault root.
    """

    model_config = {"frozen": True}

    schema_file: str = ".typevault/schema.json"
    snapshot_file: str = ".typevault/schema.applied.json"


class AuditConfig(BaseModel):
    """[audit] section."""

    model_config = {"frozen": True}

    strict: bool = False
    allowed_fields: list[str] = Field(default_factory=list)
    ignored_directories: list[str] = Field(default_factory=list)
    workers: int = Field(default=1, ge=1)


class TypevaultConfig(BaseModel):
    """Root config model representing the full typevault.toml."""

    model_config = {"frozen": True}

    vault: VaultConfig = Field(default_factory=VaultConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

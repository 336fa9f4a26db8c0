"""TypevaultSettings: one frozen object for CLI flags, env vars and TOML.

Later sources lose to earlier ones:

  1. keyword arguments (the global CLI flags)
  2. ``TYPEVAULT_*`` environment variables, ``__`` for nesting
     (``TYPEVAULT_AUDIT__STRICT=true``)
  3. the ``typevault.toml`` in effect
  4. section model defaults
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from typevault.config.discovery import find_config, read_config_data
from typevault.config.models import AuditConfig, PathsConfig, VaultConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by a parsed ``typevault.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path is not None and toml_path.is_file():
            self._data = read_config_data(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# The TOML path has to reach settings_customise_sources, which pydantic
# calls as a classmethod during __init__.
_construction = threading.local()


class TypevaultSettings(BaseSettings):
    """Settings for one CLI invocation.

    Attributes:
        vault_root: Directory holding the vault. Defaults to the config
            file's directory, else the working directory.
        config_path: The ``typevault.toml`` that was read, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "TYPEVAULT_",
        "env_nested_delimiter": "__",
    }

    vault_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    vault: VaultConfig = Field(default_factory=VaultConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_source = TomlSettingsSource(settings_cls, getattr(_construction, "toml_path", None))
        return init_settings, env_settings, toml_source

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        vault_root: Path | None = None,
        **cli_flags: Any,
    ) -> TypevaultSettings:
        """Build settings the way the ``typevault`` group does.

        An explicit *config_path* that does not exist is ignored rather
        than triggering discovery.
        """
        if config_path:
            explicit = Path(config_path)
            toml_path = explicit if explicit.is_file() else None
        else:
            toml_path = find_config(vault_root)

        if vault_root is None:
            vault_root = toml_path.parent if toml_path else Path.cwd()

        _construction.toml_path = toml_path
        try:
            return cls(vault_root=vault_root, config_path=toml_path, **cli_flags)
        finally:
            _construction.toml_path = None

    @property
    def schema_path(self) -> Path:
        return self.vault_root / self.paths.schema_file

    @property
    def snapshot_path(self) -> Path:
        return self.vault_root / self.paths.snapshot_file

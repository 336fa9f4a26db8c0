"""Tests for TypevaultSettings: unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from typevault.config.settings import TypevaultSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TYPEVAULT_CONFIG", "TYPEVAULT_VAULT_ROOT", "TYPEVAULT_VERBOSE", "TYPEVAULT_AUDIT__STRICT"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = TypevaultSettings.from_cli(vault_root=tmp_path)
        assert settings.vault_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.quiet is False
        assert settings.vault.name == "my-vault"
        assert settings.audit.strict is False
        assert settings.schema_path == tmp_path / ".typevault" / "schema.json"
        assert settings.snapshot_path == tmp_path / ".typevault" / "schema.applied.json"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = TypevaultSettings.from_cli(vault_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "typevault.toml").write_text('[vault]\nname = "research-vault"\n[audit]\nworkers = 4\n')
        settings = TypevaultSettings.from_cli(vault_root=tmp_path)
        assert settings.vault.name == "research-vault"
        assert settings.audit.workers == 4
        assert settings.audit.strict is False  # default preserved

    def test_vault_root_from_config_location(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "typevault.toml").write_text('[vault]\nname = "walked"\n')
        nested = tmp_path / "Projects" / "Alpha"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = TypevaultSettings.from_cli()
        assert settings.vault_root == tmp_path.resolve()
        assert settings.vault.name == "walked"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.toml"
        custom.write_text('[paths]\nschema_file = "types.json"\n')
        settings = TypevaultSettings.from_cli(config_path=str(custom), vault_root=tmp_path)
        assert settings.config_path == custom
        assert settings.schema_path == tmp_path / "types.json"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "typevault.toml").write_text("[vault\nname=")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            TypevaultSettings.from_cli(vault_root=tmp_path)


class TestPriority:
    def test_cli_flags_win(self, tmp_path: Path) -> None:
        settings = TypevaultSettings.from_cli(vault_root=tmp_path, verbose=True, json_output=True)
        assert settings.verbose is True
        assert settings.json_output is True

    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "typevault.toml").write_text("[audit]\nstrict = false\n")
        monkeypatch.setenv("TYPEVAULT_AUDIT__STRICT", "true")
        settings = TypevaultSettings.from_cli(vault_root=tmp_path)
        assert settings.audit.strict is True

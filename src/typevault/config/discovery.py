"""Locating and reading ``typevault.toml``.

The file is found the way git finds ``.git/``: start in a directory and
walk towards the filesystem root. ``TYPEVAULT_CONFIG`` short-circuits the
search.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

import click

from typevault.config.models import TypevaultConfig

CONFIG_FILENAME = "typevault.toml"
CONFIG_ENV_VAR = "TYPEVAULT_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file governing *start* (default: cwd), if any.

    A set but dangling ``TYPEVAULT_CONFIG`` disables discovery entirely.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        candidate = Path(override)
        return candidate if candidate.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for folder in (directory, *directory.parents):
        candidate = folder / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_config_data(path: Path) -> dict[str, Any]:
    """Parse *path* as TOML.

    Raises:
        click.ClickException: if the file is not valid TOML.
    """
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise click.ClickException(f"Invalid TOML in {path}: {exc}") from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> TypevaultConfig:
    """Validated config sections from *path*, or from the file found above *cwd*.

    Missing files yield the defaults.
    """
    path = path or find_config(cwd)
    if path is None:
        return TypevaultConfig()
    return TypevaultConfig.model_validate(read_config_data(path))

"""Configuration loading for state stores.

A store is described by a ``StoreConfig``: which backend to use, where it
lives on disk and an optional namespace for every key. Configuration is
merged from YAML files, then ``HOOKSTATE_*`` environment variables, then
explicit overrides (for example CLI options).
"""

import os
from pathlib import Path
from typing import Any, Literal

import msgspec
import yaml

from hookstate.exceptions import ConfigError

StorageType = Literal["memory", "file", "sqlite"]

STORAGE_TYPES = ("memory", "file", "sqlite")

ENV_PREFIX = "HOOKSTATE_"


class StoreConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Construction-time options for a state store."""

    storage: StorageType = "memory"
    path: str | None = None
    namespace: str | None = None

    def __post_init__(self) -> None:
        if self.storage not in STORAGE_TYPES:
            raise ConfigError(
                f"Unknown storage {self.storage!r}, expected one of "
                f"{', '.join(STORAGE_TYPES)}"
            )
        if self.storage != "memory" and not self.path:
            raise ConfigError(f"The {self.storage} backend requires a path")


def from_file(path: Path) -> dict[str, Any]:
    """Load raw configuration from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def get_config_paths() -> list[Path]:
    """Get configuration paths in precedence order (last wins)."""
    xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return [
        xdg_config_home / "hookstate" / "config.yaml",
        Path(".hookstate.yaml"),
        Path("hookstate.yaml"),
    ]


def env_overrides() -> dict[str, Any]:
    """Collect overrides from HOOKSTATE_* environment variables."""
    overrides = {}
    for field in ("storage", "path", "namespace"):
        if value := os.environ.get(f"{ENV_PREFIX}{field.upper()}"):
            overrides[field] = value
    return overrides


def load_config(
    path: Path | None = None, overrides: dict[str, Any] | None = None
) -> StoreConfig:
    """Build a StoreConfig from files, environment and explicit overrides.

    When ``path`` is given only that file is read; otherwise every
    existing file from ``get_config_paths()`` is merged.
    """
    raw: dict[str, Any] = {}
    paths = [path] if path is not None else get_config_paths()
    for config_path in paths:
        if config_path.exists() or config_path == path:
            raw.update(from_file(config_path))

    raw.update(env_overrides())
    raw.update({k: v for k, v in (overrides or {}).items() if v is not None})

    # A memory store has nowhere to put a path.
    if raw.get("storage", "memory") == "memory":
        raw.pop("path", None)

    try:
        return msgspec.convert(raw, StoreConfig)
    except msgspec.ValidationError as e:
        raise ConfigError(f"Invalid store configuration: {e}") from e

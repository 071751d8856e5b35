"""
Launch configuration for scriptr.

Constants, dataclasses, settings loading and cache-root resolution.
"""

from __future__ import annotations

import enum
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from scriptr.core.errors import ConfigError
from scriptr.core.utils import (
    NAME,
    CACHE_DIR_ENV,
    CONFIG_ENV,
    HASH_ONLY_ENV,
    env_flag,
    platform_cache_home,
    platform_config_home,
)

__all__ = [
    "BuildMode",
    "Settings",
    "LaunchConfig",
    "DEFAULT_CARGO",
    "DEFAULT_TOOLCHAIN",
    "config_path",
    "load_settings",
    "resolve_cache_root",
]

# =============================================================================
# Constants
# =============================================================================

DEFAULT_CARGO = ["cargo"]
DEFAULT_TOOLCHAIN = "nightly"
CONFIG_FILENAME = "config.yaml"


class BuildMode(str, enum.Enum):
    """Cargo profile a binary was (or should be) built with."""

    DEBUG = "debug"
    RELEASE = "release"

    @classmethod
    def from_flag(cls, debug: bool) -> "BuildMode":
        return cls.DEBUG if debug else cls.RELEASE


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Settings:
    """User settings, read from the YAML settings file."""

    cargo: list[str] = field(default_factory=lambda: list(DEFAULT_CARGO))
    toolchain: Optional[str] = DEFAULT_TOOLCHAIN  # None omits "+channel"
    cache_dir: Optional[Path] = None
    hash_only: bool = False
    extra_build_args: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a parsed YAML mapping, validating types."""
        settings = cls()
        unknown = set(data) - {"cargo", "toolchain", "cache_dir", "hash_only", "extra_build_args"}
        if unknown:
            raise ConfigError(f"unknown settings: {', '.join(sorted(unknown))}")

        if "cargo" in data:
            cargo = data["cargo"]
            if isinstance(cargo, str):
                try:
                    cargo = shlex.split(cargo)
                except ValueError as e:
                    raise ConfigError(f"'cargo' is not a valid command line: {e}") from e
            if (
                not isinstance(cargo, list)
                or not cargo
                or not all(isinstance(part, str) for part in cargo)
            ):
                raise ConfigError("'cargo' must be a command string or a non-empty list of strings")
            settings.cargo = list(cargo)

        if "toolchain" in data:
            toolchain = data["toolchain"]
            if toolchain is not None and not isinstance(toolchain, str):
                raise ConfigError("'toolchain' must be a string or null")
            settings.toolchain = toolchain or None

        if data.get("cache_dir") is not None:
            if not isinstance(data["cache_dir"], str):
                raise ConfigError("'cache_dir' must be a string")
            settings.cache_dir = Path(data["cache_dir"]).expanduser()

        if "hash_only" in data:
            if not isinstance(data["hash_only"], bool):
                raise ConfigError("'hash_only' must be true or false")
            settings.hash_only = data["hash_only"]

        if "extra_build_args" in data:
            extra = data["extra_build_args"] or []
            if not isinstance(extra, list) or not all(isinstance(a, str) for a in extra):
                raise ConfigError("'extra_build_args' must be a list of strings")
            settings.extra_build_args = list(extra)

        return settings


@dataclass
class LaunchConfig:
    """Configuration for a single launcher invocation."""

    script: Path  # canonical absolute path
    cache_root: Path
    args: list[str] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)
    debug: bool = False
    verbose: bool = False
    force: bool = False
    clean: bool = False
    clean_only: bool = False
    hash_only: bool = False

    @property
    def build_mode(self) -> BuildMode:
        return BuildMode.from_flag(self.debug)


# =============================================================================
# Settings and Cache Root
# =============================================================================


def config_path(explicit: Optional[Path] = None) -> Path:
    """Locate the settings file: --config, then $SCRIPTR_CONFIG, then the user config dir."""
    if explicit is not None:
        return Path(explicit).expanduser()
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env).expanduser()
    return platform_config_home() / NAME / CONFIG_FILENAME


def load_settings(path: Path) -> Settings:
    """Load settings from a YAML file; a missing or empty file yields defaults.

    $SCRIPTR_HASH_ONLY switches on ``hash_only`` regardless of the file.
    """
    data: Any = None
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read settings {path}: {e}") from e

    if data is None:
        settings = Settings()
    elif isinstance(data, dict):
        settings = Settings.from_dict(data)
    else:
        raise ConfigError(f"settings {path} must be a mapping")

    if env_flag(HASH_ONLY_ENV):
        settings.hash_only = True
    return settings


def resolve_cache_root(settings: Optional[Settings] = None) -> Path:
    """Resolve the cache root once per process.

    Order: $SCRIPTR_CACHE_DIR, the ``cache_dir`` setting, then the
    platform cache directory joined with ``scriptr``.
    """
    env = os.environ.get(CACHE_DIR_ENV)
    if env:
        return Path(env).expanduser()
    if settings is not None and settings.cache_dir is not None:
        return settings.cache_dir
    return platform_cache_home() / NAME

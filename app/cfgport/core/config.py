"""User configuration for cfgport.

This module provides the configuration model and I/O functions for the
defaults applied to export and import commands.

Configuration is stored in ~/.config/cfgport/config.toml
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cfgport.core.paths import get_config_path
from cfgport.portability.models import MergeStrategy


class PortConfig(BaseModel):
    """Defaults for export and import operations.

    Command-line options always take precedence over these values.

    Attributes:
        merge_strategy: Strategy used by ``import`` when none is given.
        backup: Back up existing files before importing.
        include_sensitive: Keep credentials in exports and imports.
        output_dir: Directory receiving exported packages (None = home).
    """

    model_config = ConfigDict(extra="forbid")

    merge_strategy: Annotated[
        MergeStrategy,
        Field(description="Default merge strategy for imports"),
    ] = MergeStrategy.MERGE
    backup: Annotated[
        bool,
        Field(description="Back up existing files before importing"),
    ] = True
    include_sensitive: Annotated[
        bool,
        Field(description="Keep credentials in packages"),
    ] = False
    output_dir: Annotated[
        Path | None,
        Field(description="Directory for exported packages (None = home directory)"),
    ] = None


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> PortConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated PortConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return PortConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> PortConfig:
    """Load configuration, falling back to defaults when no file exists.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return PortConfig()


def save_config(config: PortConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The PortConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def _config_to_dict(config: PortConfig) -> dict[str, object]:
    """Convert PortConfig to a dictionary for TOML serialization.

    ``output_dir`` is omitted when unset; TOML has no null.
    """
    result: dict[str, object] = {
        "merge_strategy": config.merge_strategy.value,
        "backup": config.backup,
        "include_sensitive": config.include_sensitive,
    }
    if config.output_dir is not None:
        result["output_dir"] = str(config.output_dir)
    return result

"""Unit tests for PortConfig and related functions.

Tests for loading, saving and defaulting the user configuration file.
"""

from pathlib import Path

import pytest
from cfgport.core.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    PortConfig,
    load_config,
    load_config_or_default,
    save_config,
)
from cfgport.portability.models import MergeStrategy
from pydantic import ValidationError


class TestPortConfig:
    """Tests for PortConfig Pydantic model."""

    def test_default_values(self) -> None:
        """PortConfig has correct default values."""
        config = PortConfig()

        assert config.merge_strategy is MergeStrategy.MERGE
        assert config.backup is True
        assert config.include_sensitive is False
        assert config.output_dir is None

    def test_extra_fields_forbidden(self) -> None:
        """Unknown keys are rejected."""
        with pytest.raises(ValidationError):
            PortConfig(colour="blue")  # type: ignore[call-arg]


class TestLoadConfig:
    """Tests for load_config and load_config_or_default."""

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """load_config raises when the file does not exist."""
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "config.toml")

    def test_missing_file_defaults(self, tmp_path: Path) -> None:
        """load_config_or_default falls back to defaults."""
        assert load_config_or_default(tmp_path / "config.toml") == PortConfig()

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML is a parse error."""
        path = tmp_path / "config.toml"
        path.write_text("merge_strategy = [")

        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Schema violations are config errors."""
        path = tmp_path / "config.toml"
        path.write_text('merge_strategy = "overwrite"\n')

        with pytest.raises(ConfigError, match="Invalid config content"):
            load_config(path)

    def test_loads_values(self, tmp_path: Path) -> None:
        """Values from the file are validated into the model."""
        path = tmp_path / "config.toml"
        path.write_text('merge_strategy = "skip-existing"\nbackup = false\noutput_dir = "/tmp/x"\n')

        config = load_config(path)

        assert config.merge_strategy is MergeStrategy.SKIP_EXISTING
        assert config.backup is False
        assert config.output_dir == Path("/tmp/x")


class TestSaveConfig:
    """Tests for save_config."""

    def test_save_and_reload(self, tmp_path: Path) -> None:
        """A saved config loads back unchanged."""
        path = tmp_path / "nested" / "config.toml"
        config = PortConfig(merge_strategy=MergeStrategy.REPLACE, output_dir=Path("/srv/pkgs"))

        saved = save_config(config, path)

        assert saved == path
        assert load_config(path) == config

    def test_output_dir_omitted_when_unset(self, tmp_path: Path) -> None:
        """TOML has no null, so an unset output_dir is not written."""
        path = tmp_path / "config.toml"
        save_config(PortConfig(), path)

        assert "output_dir" not in path.read_text()
        assert not list(tmp_path.glob("*.tmp"))

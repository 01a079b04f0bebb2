"""Unit tests for XDG path management.

Tests for the paths module that provides XDG-compliant directory paths.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from cfgport.core.paths import (
    APP_NAME,
    _ensure_dir,
    ensure_import_backup_dir,
    get_config_dir,
    get_config_path,
    get_import_backup_dir,
    get_state_dir,
)


class TestGetConfigDir:
    """Tests for get_config_dir function."""

    def test_default_config_dir(self) -> None:
        """get_config_dir returns default path when XDG_CONFIG_HOME not set."""
        with patch.dict(os.environ, {"HOME": str(Path.home())}):
            os.environ.pop("XDG_CONFIG_HOME", None)

            result = get_config_dir()

        assert result == Path.home() / ".config" / APP_NAME

    def test_respects_xdg_config_home(self, tmp_path: Path) -> None:
        """get_config_dir respects XDG_CONFIG_HOME environment variable."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            result = get_config_dir()

        assert result == tmp_path / APP_NAME

    def test_config_path(self, tmp_path: Path) -> None:
        """Config file is config.toml in the config directory."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            assert get_config_path() == tmp_path / APP_NAME / "config.toml"


class TestStatePaths:
    """Tests for state directory and import backup paths."""

    def test_respects_xdg_state_home(self, tmp_path: Path) -> None:
        """get_state_dir respects XDG_STATE_HOME environment variable."""
        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path)}):
            assert get_state_dir() == tmp_path / APP_NAME

    def test_import_backup_dir(self, tmp_path: Path) -> None:
        """Import backups live under the state directory."""
        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path)}):
            assert get_import_backup_dir() == tmp_path / APP_NAME / "import-backups"

    def test_ensure_import_backup_dir_creates(self, tmp_path: Path) -> None:
        """ensure_import_backup_dir creates missing directories."""
        with patch.dict(os.environ, {"XDG_STATE_HOME": str(tmp_path)}):
            result = ensure_import_backup_dir()

        assert result.is_dir()


class TestEnsureDir:
    """Tests for _ensure_dir helper."""

    def test_permission_error_becomes_runtime_error(self, tmp_path: Path) -> None:
        """Permission problems are reported as RuntimeError."""
        with (
            patch.object(Path, "mkdir", side_effect=PermissionError("denied")),
            pytest.raises(RuntimeError, match="Permission denied"),
        ):
            _ensure_dir(tmp_path / "x", "test")

"""Unit tests for theme module.

Tests for color validation, override loading, and Rich theme generation.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import pytest
from cfgport.core.theme import (
    ThemeColors,
    _read_overrides,
    get_rich_theme,
    get_user_theme_path,
    load_theme,
)
from rich.theme import Theme


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        """ThemeColors has sensible defaults."""
        colors = ThemeColors()
        assert colors.text == "#ffffff"
        assert colors.conflict == "#faf870"
        assert colors.redacted == "#d44ebc"

    def test_short_hex_accepted(self) -> None:
        """ThemeColors accepts #RGB codes."""
        assert ThemeColors(muted="#abc").muted == "#abc"

    def test_invalid_hex_no_hash(self) -> None:
        """ThemeColors rejects colors without # prefix."""
        with pytest.raises(ValueError, match="must start with '#'"):
            ThemeColors(text="ffffff")

    def test_invalid_hex_chars(self) -> None:
        """ThemeColors rejects invalid hex characters."""
        with pytest.raises(ValueError, match="invalid hex color"):
            ThemeColors(text="#gggggg")

    def test_unknown_color_rejected(self) -> None:
        """Colors without a console style are not accepted."""
        with pytest.raises(ValueError):
            ThemeColors.model_validate({"added": "#00ff00"})


class TestLoadTheme:
    """Tests for override file loading."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """Without an override file every default applies."""
        assert load_theme(tmp_path / "missing.toml") == ThemeColors()

    def test_override_replaces_single_color(self, tmp_path: Path) -> None:
        """An override changes only the colors it names."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\nconflict = "#ff0000"\n')

        colors = load_theme(theme_file)

        assert colors.conflict == "#ff0000"
        assert colors.header == "#69B9A1"

    def test_invalid_color_falls_back(self, tmp_path: Path) -> None:
        """An invalid override color falls back to defaults."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\nheader = "red"\n')

        assert load_theme(theme_file) == ThemeColors()

    def test_malformed_toml_ignored(self, tmp_path: Path) -> None:
        """A file that is not TOML is ignored."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("[colors\n")

        assert _read_overrides(theme_file) == {}

    def test_colors_not_a_table_ignored(self, tmp_path: Path) -> None:
        """A scalar colors key is ignored."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('colors = "dark"\n')

        assert _read_overrides(theme_file) == {}

    def test_default_path_is_user_theme(self, tmp_path: Path) -> None:
        """Without a path the user override file is read."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ninfo = "#123456"\n')

        with patch("cfgport.core.theme.get_user_theme_path", return_value=theme_file):
            colors = load_theme()

        assert colors.info == "#123456"

    def test_user_theme_path_under_config_dir(self, tmp_path: Path) -> None:
        """User theme lives next to the config file."""
        with patch("cfgport.core.theme.get_config_dir", return_value=tmp_path):
            assert get_user_theme_path() == tmp_path / "theme.toml"


class TestGetRichTheme:
    """Tests for get_rich_theme function."""

    def test_includes_styles_used_by_cli(self) -> None:
        """Theme defines every style the CLI markup refers to."""
        theme = get_rich_theme(ThemeColors())

        assert isinstance(theme, Theme)
        for style in (
            "info",
            "warning",
            "error",
            "success",
            "conflict",
            "redacted",
            "muted",
            "bold_header",
            "border",
            "file.path",
            "file.size",
        ):
            assert style in theme.styles

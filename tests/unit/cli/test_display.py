"""Unit tests for cli/display.py.

Tests for shared Rich display functions used by the import and inspect
commands.
"""

import io

import pytest
from cfgport.cli.display import (
    create_conflicts_table,
    print_conflict_summary,
    print_manifest,
)
from cfgport.core.platform import PlatformType
from cfgport.core.theme import get_theme
from cfgport.portability.models import (
    ConfigConflict,
    ExportFileInfo,
    ExportMetadata,
    FileCategory,
    Resolution,
    ToolType,
)
from rich.console import Console

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings_conflict() -> ConfigConflict:
    """A scalar settings conflict."""
    return ConfigConflict(FileCategory.SETTINGS, "model", "sonnet", "opus")


@pytest.fixture
def service_conflict() -> ConfigConflict:
    """An MCP service conflict needing review."""
    return ConfigConflict(
        FileCategory.MCP,
        "filesystem",
        {"command": "node"},
        {"command": "bun"},
        Resolution.NEEDS_MANUAL_REVIEW,
    )


def _capture_console_output(func: object, *args: object, **kwargs: object) -> str:
    """Capture Rich console output by temporarily replacing the console.

    Patches the module-level console used by display functions and captures
    output to a StringIO buffer.
    """
    import cfgport.cli.display as display_mod

    buf = io.StringIO()
    test_console = Console(theme=get_theme(), file=buf, color_system=None, width=120)

    original_console = display_mod.console
    display_mod.console = test_console
    try:
        func(*args, **kwargs)  # type: ignore[operator]
    finally:
        display_mod.console = original_console

    return buf.getvalue()


# ===========================================================================
# create_conflicts_table
# ===========================================================================


class TestCreateConflictsTable:
    """Tests for create_conflicts_table."""

    def test_columns(self, settings_conflict: ConfigConflict) -> None:
        """Table has Category, Name and Resolution columns."""
        table = create_conflicts_table([settings_conflict])
        assert [col.header for col in table.columns] == ["Category", "Name", "Resolution"]

    def test_rows(
        self, settings_conflict: ConfigConflict, service_conflict: ConfigConflict
    ) -> None:
        """One row per conflict with its resolution."""
        table = create_conflicts_table([settings_conflict, service_conflict])
        assert table.row_count == 2

        buf = io.StringIO()
        Console(theme=get_theme(), file=buf, color_system=None, width=120).print(table)
        output = buf.getvalue()

        assert "use-incoming" in output
        assert "needs-manual-review" in output
        assert "filesystem" in output


# ===========================================================================
# print_conflict_summary / print_manifest
# ===========================================================================


class TestPrintConflictSummary:
    """Tests for print_conflict_summary."""

    def test_no_conflicts_prints_nothing(self) -> None:
        """Empty conflict list produces no output."""
        assert _capture_console_output(print_conflict_summary, []) == ""

    def test_counts_and_critical(
        self, settings_conflict: ConfigConflict, service_conflict: ConfigConflict
    ) -> None:
        """Summary shows totals per category and flags critical conflicts."""
        output = _capture_console_output(
            print_conflict_summary, [settings_conflict, service_conflict]
        )

        assert "2 conflicts" in output
        assert "settings: 1" in output
        assert "mcp: 1" in output
        assert "1 affect MCP services or profiles" in output


class TestPrintManifest:
    """Tests for print_manifest."""

    def test_manifest_details(self) -> None:
        """Header details and one row per file are printed."""
        metadata = ExportMetadata(
            platform=PlatformType.DARWIN,
            tool_types=[ToolType.CLAUDE_CODE, ToolType.CODEX],
            scope=["all"],
            description="work laptop",
            contains_credentials=True,
            files=[
                ExportFileInfo(
                    path="configs/claude-code/settings.json",
                    category=FileCategory.SETTINGS,
                    size=2048,
                    checksum="abc",
                    redacted=True,
                )
            ],
        )

        output = _capture_console_output(print_manifest, metadata)

        assert "Platform: darwin" in output
        assert "Tools: claude-code, codex" in output
        assert "Description: work laptop" in output
        assert "unredacted credentials" in output
        assert "configs/claude-code/settings.json" in output
        assert "2.0 KB" in output
        assert "1 files" in output

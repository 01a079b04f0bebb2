"""Unit tests for restore command.

Tests for the CLI restore command implementation.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from cfgport.cli.main import app
from cfgport.core.platform import PlatformContext
from cfgport.portability.backup import BackupProvider, BackupSnapshot
from click.testing import Result
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """XDG state home for the test."""
    return tmp_path / "state"


@pytest.fixture
def snapshot(context: PlatformContext, claude_dir: Path, state_dir: Path) -> BackupSnapshot:
    """Backup of a settings file, taken before it was overwritten."""
    settings = claude_dir / "settings.json"
    settings.write_text('{"model": "opus"}')
    provider = BackupProvider(context, backup_root=state_dir / "cfgport" / "import-backups")
    taken = provider.create([settings])
    assert taken is not None
    settings.write_text('{"model": "broken"}')
    return taken


def _invoke(args: list[str], context: PlatformContext, state_dir: Path) -> Result:
    with (
        patch("cfgport.cli.commands.restore.PlatformContext.current", return_value=context),
        patch.dict(os.environ, {"XDG_STATE_HOME": str(state_dir)}),
    ):
        return runner.invoke(app, args)


class TestRestoreCommand:
    """Tests for cfgport restore command."""

    def test_restores_given_backup(
        self,
        snapshot: BackupSnapshot,
        claude_dir: Path,
        context: PlatformContext,
        state_dir: Path,
    ) -> None:
        """The named backup is copied back after confirmation is skipped."""
        result = _invoke(["restore", str(snapshot.root), "--yes"], context, state_dir)

        assert result.exit_code == 0
        assert "Restored 1 files" in result.output
        assert (claude_dir / "settings.json").read_text() == '{"model": "opus"}'

    def test_defaults_to_latest_backup(
        self,
        snapshot: BackupSnapshot,
        claude_dir: Path,
        context: PlatformContext,
        state_dir: Path,
    ) -> None:
        """Without an argument the most recent backup is used."""
        result = _invoke(["restore", "-y"], context, state_dir)

        assert result.exit_code == 0
        assert snapshot.root.name in result.output
        assert (claude_dir / "settings.json").read_text() == '{"model": "opus"}'

    def test_dry_run_writes_nothing(
        self,
        snapshot: BackupSnapshot,
        claude_dir: Path,
        context: PlatformContext,
        state_dir: Path,
    ) -> None:
        """--dry-run only previews."""
        result = _invoke(["restore", str(snapshot.root), "--dry-run"], context, state_dir)

        assert result.exit_code == 0
        assert "[DRY-RUN]" in result.output
        assert (claude_dir / "settings.json").read_text() == '{"model": "broken"}'

    def test_declined_confirmation(
        self,
        snapshot: BackupSnapshot,
        claude_dir: Path,
        context: PlatformContext,
        state_dir: Path,
    ) -> None:
        """Answering no cancels the restore."""
        with (
            patch("cfgport.cli.commands.restore.PlatformContext.current", return_value=context),
            patch.dict(os.environ, {"XDG_STATE_HOME": str(state_dir)}),
        ):
            result = runner.invoke(app, ["restore", str(snapshot.root)], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert (claude_dir / "settings.json").read_text() == '{"model": "broken"}'

    def test_no_backups(self, context: PlatformContext, state_dir: Path) -> None:
        """An empty backup directory is reported, not an error."""
        result = _invoke(["restore"], context, state_dir)

        assert result.exit_code == 0
        assert "No import backups found" in result.output

    def test_invalid_backup_directory(
        self, context: PlatformContext, state_dir: Path, tmp_path: Path
    ) -> None:
        """A directory without a backup manifest is rejected."""
        result = _invoke(["restore", str(tmp_path), "-y"], context, state_dir)

        assert result.exit_code == 1
        assert "Cannot read backup" in result.output

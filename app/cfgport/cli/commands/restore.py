"""Restore command for rolling back an import by hand.

This module provides the `cfgport restore` command which copies the files
saved in an import backup back to where they came from.
"""

from pathlib import Path
from typing import Annotated

import typer

from cfgport.core.paths import get_import_backup_dir
from cfgport.core.platform import PlatformContext
from cfgport.portability.backup import BACKUP_MANIFEST_NAME, BackupProvider, BackupSnapshot
from cfgport.utils.formatting import console, print_error, print_info, print_success


def _latest_backup() -> Path | None:
    """Find the most recent import backup directory."""
    root = get_import_backup_dir()
    if not root.is_dir():
        return None
    candidates = sorted(p for p in root.iterdir() if (p / BACKUP_MANIFEST_NAME).is_file())
    return candidates[-1] if candidates else None


def _show_restore_preview(snapshot: BackupSnapshot) -> None:
    """Display the files a restore will overwrite.

    Args:
        snapshot: The backup to preview.
    """
    console.print(f"\n[bold]Restore backup {snapshot.root.name}[/bold]")
    console.print(f"  Date: {snapshot.created:%Y-%m-%d %H:%M:%S} UTC")
    console.print(f"  Files ({len(snapshot.files)}):")
    for original in snapshot.originals[:10]:
        console.print(f"    - [file.path]{original}[/file.path]")
    if len(snapshot.files) > 10:
        console.print(f"    ... and {len(snapshot.files) - 10} more")
    console.print()


def restore_backup(
    backup: Annotated[
        Path | None,
        typer.Argument(help="Backup directory to restore (default: most recent)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be restored without writing files.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
) -> None:
    """Restore files saved by an import backup.

    Every backed-up file is copied back to its original location. Files
    the import created are left alone.

    Examples:
        cfgport restore                  # Most recent backup, with confirmation
        cfgport restore --dry-run        # Preview only
        cfgport restore ~/.local/state/cfgport/import-backups/20260101T120000Z -y
    """
    root = backup.expanduser() if backup else _latest_backup()
    if root is None:
        print_info("No import backups found.")
        return

    try:
        snapshot = BackupSnapshot.load(root)
    except (OSError, ValueError) as e:
        print_error(f"Cannot read backup {root}: {e}")
        raise typer.Exit(code=1) from e

    _show_restore_preview(snapshot)

    if dry_run:
        print_info("[DRY-RUN] No files were written.")
        return

    if not yes and not typer.confirm("Overwrite these files with the backup?"):
        print_info("Cancelled.")
        return

    report = BackupProvider(PlatformContext.current()).restore(snapshot, ())

    if not report.ok:
        print_error("Some files could not be restored:")
        for failure in report.failed:
            console.print(f"  - {failure}")
        raise typer.Exit(code=1)

    print_success(f"Restored {len(report.restored)} files from {snapshot.root}")

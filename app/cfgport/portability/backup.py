"""Backup and rollback of files an import is about to touch.

Each import gets a timestamped backup directory holding copies of every
existing target file (relative to the home directory) and a
``backup-manifest.json`` listing them. Rollback compares that manifest
with the set of files the import touched: backed-up files are copied back
and files the import created are removed.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from cfgport.core.paths import ensure_import_backup_dir
from cfgport.core.platform import PlatformContext

logger = logging.getLogger(__name__)

BACKUP_MANIFEST_NAME = "backup-manifest.json"


@dataclass(frozen=True, slots=True)
class BackupSnapshot:
    """A completed backup.

    Attributes:
        root: Backup directory.
        home: Home directory the relative paths are anchored at.
        files: Relative paths of the backed-up files.
        created: Creation timestamp (UTC).
    """

    root: Path
    home: Path
    files: tuple[Path, ...]
    created: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def originals(self) -> tuple[Path, ...]:
        """Absolute locations the backed-up files came from."""
        return tuple(self.home / rel for rel in self.files)

    def copy_of(self, relative: Path) -> Path:
        """Location of the backup copy of a file."""
        return self.root / relative

    def write_manifest(self) -> Path:
        """Write the backup manifest into the backup directory."""
        path = self.root / BACKUP_MANIFEST_NAME
        data = {
            "created": self.created.isoformat(),
            "home": str(self.home),
            "files": [rel.as_posix() for rel in self.files],
        }
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return path

    @classmethod
    def load(cls, root: Path) -> BackupSnapshot:
        """Read a snapshot back from its backup directory.

        Raises:
            OSError: If the manifest cannot be read.
            ValueError: If the manifest is malformed.
        """
        path = root / BACKUP_MANIFEST_NAME
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return cls(
                root=root,
                home=Path(data["home"]),
                files=tuple(Path(p) for p in data["files"]),
                created=datetime.fromisoformat(data["created"]),
            )
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            msg = f"Invalid backup manifest {path}: {e}"
            raise ValueError(msg) from e


@dataclass(frozen=True, slots=True)
class RestoreReport:
    """Outcome of a rollback.

    Attributes:
        restored: Files copied back from the backup.
        removed: Files created by the import and deleted again.
        failed: Human-readable descriptions of paths that could not be
            restored or removed.
    """

    restored: tuple[Path, ...] = ()
    removed: tuple[Path, ...] = ()
    failed: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        """Whether every file was restored or removed."""
        return not self.failed


class BackupProvider:
    """Creates backups in timestamped directories and restores them.

    Args:
        context: Platform context providing the home directory.
        backup_root: Parent of the timestamped directories. Defaults to
            the XDG state import-backup directory.
    """

    def __init__(self, context: PlatformContext, backup_root: Path | None = None) -> None:
        self._context = context
        self._backup_root = backup_root

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self._context.home_path)
        except ValueError as e:
            msg = f"Cannot back up {path}: outside the home directory {self._context.home}"
            raise ValueError(msg) from e

    def _new_dir(self) -> Path:
        base = self._backup_root or ensure_import_backup_dir()
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        candidate = base / timestamp
        counter = 1
        while candidate.exists():
            candidate = base / f"{timestamp}-{counter}"
            counter += 1
        candidate.mkdir(parents=True)
        return candidate

    def create(self, targets: Iterable[Path]) -> BackupSnapshot | None:
        """Back up every existing file among the targets.

        Args:
            targets: Absolute paths the import may write.

        Returns:
            The snapshot, or None when none of the targets exist.

        Raises:
            OSError: If the backup directory or a copy cannot be written.
            ValueError: If an existing target lies outside the home directory.
        """
        existing = sorted({t for t in targets if t.is_file()})
        if not existing:
            logger.info("Nothing to back up")
            return None

        relatives = [self._relative(source) for source in existing]
        root = self._new_dir()
        for source, relative in zip(existing, relatives, strict=True):
            dest = root / relative
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest)
            logger.debug("Backed up %s -> %s", source, dest)

        snapshot = BackupSnapshot(
            root=root, home=self._context.home_path, files=tuple(relatives)
        )
        snapshot.write_manifest()
        logger.info("Backed up %d files to %s", len(relatives), root)
        return snapshot

    def restore(self, snapshot: BackupSnapshot | None, touched: Iterable[Path]) -> RestoreReport:
        """Roll back an import.

        Every backed-up file is copied back. Every touched file that was not
        backed up did not exist before the import and is removed.

        Args:
            snapshot: Backup taken before the import (None if nothing existed).
            touched: Absolute paths the import wrote.

        Returns:
            RestoreReport; failures are collected rather than raised.
        """
        restored: list[Path] = []
        removed: list[Path] = []
        failed: list[str] = []

        backed_up: set[Path] = set()
        if snapshot is not None:
            for relative, original in zip(snapshot.files, snapshot.originals, strict=True):
                backed_up.add(original)
                try:
                    original.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(snapshot.copy_of(relative), original)
                    restored.append(original)
                except OSError as e:
                    logger.warning("Could not restore %s: %s", original, e)
                    failed.append(f"{original}: {e}")

        for path in sorted(set(touched) - backed_up):
            try:
                path.unlink(missing_ok=True)
                removed.append(path)
            except OSError as e:
                logger.warning("Could not remove %s: %s", path, e)
                failed.append(f"{path}: {e}")

        report = RestoreReport(tuple(restored), tuple(removed), tuple(failed))
        logger.info(
            "Rollback restored %d files, removed %d, %d failures",
            len(restored),
            len(removed),
            len(failed),
        )
        return report

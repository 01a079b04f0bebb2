"""Import pipeline.

The importer is a strictly sequential state machine:

    validating -> backing-up -> extracting -> adapting
        -> detecting-conflicts -> applying -> complete

with ``failed`` reachable from any stage. Validation problems are reported
without touching any file. Once a backup exists, any failure triggers an
automatic rollback before the result is returned.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path
from tempfile import NamedTemporaryFile

import tomli_w

from cfgport.core.platform import PlatformContext
from cfgport.portability.backup import BackupProvider, BackupSnapshot
from cfgport.portability.errors import MergeError, PortabilityError
from cfgport.portability.layout import LayoutError, resolve_target, tool_of
from cfgport.portability.merger import RENAME_SUFFIX, merge_config, resolve_conflicts
from cfgport.portability.models import (
    ConfigConflict,
    ConflictChoice,
    ExportFileInfo,
    ExportMetadata,
    FileCategory,
    ImportOptions,
    ImportResult,
    ImportStage,
    MergeStrategy,
    ProgressCallback,
    ProgressInfo,
    ToolType,
)
from cfgport.portability.package import extract_archive
from cfgport.portability.path_adapter import adapt_config
from cfgport.portability.sanitizer import (
    carry_over_secrets,
    find_placeholders,
    sanitize,
    sanitize_keys,
)
from cfgport.portability.tree import ConfigValue
from cfgport.portability.validator import validate_import_options, validate_package

logger = logging.getLogger(__name__)

# Progress percentage reported on entering each stage.
STAGE_PROGRESS: dict[ImportStage, int] = {
    ImportStage.VALIDATING: 10,
    ImportStage.BACKING_UP: 20,
    ImportStage.EXTRACTING: 30,
    ImportStage.ADAPTING: 50,
    ImportStage.DETECTING_CONFLICTS: 60,
    ImportStage.APPLYING: 75,
    ImportStage.COMPLETE: 100,
}

# Categories whose JSON/TOML files are parsed and merged key by key.
STRUCTURED_CATEGORIES: frozenset[FileCategory] = frozenset(
    {FileCategory.SETTINGS, FileCategory.PROFILES, FileCategory.MCP}
)
STRUCTURED_SUFFIXES: frozenset[str] = frozenset({".json", ".toml"})


def is_structured(info: ExportFileInfo) -> bool:
    """Whether a packaged file is merged as a config tree."""
    return (
        info.category in STRUCTURED_CATEGORIES
        and Path(info.path).suffix.lower() in STRUCTURED_SUFFIXES
    )


def parse_config(content: bytes, suffix: str) -> ConfigValue:
    """Parse JSON or TOML config content.

    Raises:
        ValueError: If the content is not well-formed.
    """
    text = content.decode("utf-8")
    if suffix == ".toml":
        return tomllib.loads(text)
    return json.loads(text)


def dump_config(tree: ConfigValue, suffix: str) -> bytes:
    """Serialize a config tree as JSON or TOML."""
    if suffix == ".toml":
        if not isinstance(tree, dict):
            msg = "TOML documents must be tables"
            raise MergeError(msg)
        return tomli_w.dumps(tree).encode("utf-8")
    return (json.dumps(tree, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def write_atomic(path: Path, data: bytes) -> None:
    """Write a file atomically.

    The data is written to a temporary file in the same directory and then
    moved into place with ``os.replace()``. The temporary file is removed on
    failure.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(mode="wb", dir=path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            f.write(data)
        os.replace(str(tmp_path), str(path))
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise


def renamed_target(target: Path) -> Path:
    """Free sibling path receiving an incoming file kept beside the existing one.

    ``review.md`` becomes ``review_imported.md``, then
    ``review_imported-1.md`` and so on while those exist.
    """
    candidate = target.with_name(f"{target.stem}{RENAME_SUFFIX}{target.suffix}")
    counter = 1
    while candidate.exists():
        candidate = target.with_name(f"{target.stem}{RENAME_SUFFIX}-{counter}{target.suffix}")
        counter += 1
    return candidate


@dataclass(frozen=True, slots=True)
class _PlannedWrite:
    """Content to write to one destination during apply."""

    info: ExportFileInfo
    target: Path
    content: bytes


class _ImportFailed(Exception):
    """Carries a failure out of a stage together with the stage it hit."""

    def __init__(self, stage: ImportStage, cause: Exception) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(str(cause))


class Importer:
    """Restores a package onto this machine.

    Args:
        context: Platform context of the target machine.
        progress: Optional callback receiving stage progress.
        backup_provider: Provider used for backup and rollback. Defaults
            to a provider writing to the XDG state directory.
    """

    def __init__(
        self,
        context: PlatformContext,
        progress: ProgressCallback | None = None,
        backup_provider: BackupProvider | None = None,
    ) -> None:
        self.context = context
        self._progress = progress
        self.backup_provider = backup_provider or BackupProvider(context)

    def _enter(self, stage: ImportStage) -> ImportStage:
        logger.info("Import stage: %s", stage.value)
        if self._progress is not None:
            self._progress(ProgressInfo(step=stage.value, percent=STAGE_PROGRESS[stage]))
        return stage

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def _select(
        self, metadata: ExportMetadata, target_tool: ToolType | None
    ) -> dict[str, tuple[ExportFileInfo, Path]]:
        """Map the package's files to their destinations.

        Files the layout cannot map were already reported by validation and
        are skipped here.
        """
        tools = None if target_tool in (None, ToolType.ALL) else {target_tool}
        selected: dict[str, tuple[ExportFileInfo, Path]] = {}
        for info in metadata.files:
            try:
                if tools is not None and tool_of(info.path) not in tools:
                    continue
                selected[info.path] = (info, resolve_target(info.path, self.context))
            except LayoutError as e:
                logger.warning("Skipping %s: %s", info.path, e)
        return selected

    def _adapt(
        self,
        metadata: ExportMetadata,
        selected: dict[str, tuple[ExportFileInfo, Path]],
        extracted: Path,
        include_sensitive: bool,
        warnings: list[str],
    ) -> dict[str, ConfigValue | bytes]:
        """Load every selected file, adapting and sanitizing config trees."""
        loaded: dict[str, ConfigValue | bytes] = {}
        for path, (info, _) in selected.items():
            content = (extracted / path).read_bytes()
            if not is_structured(info):
                loaded[path] = content
                continue

            suffix = Path(path).suffix.lower()
            try:
                tree = parse_config(content, suffix)
            except (ValueError, UnicodeDecodeError) as e:
                msg = f"Cannot parse {path} from package: {e}"
                raise MergeError(msg) from e

            adapted = adapt_config(tree, metadata.platform, self.context.platform, self.context)
            warnings.extend(f"Path adaptation: {w}" for w in adapted.warnings)
            tree = adapted.tree
            if not include_sensitive:
                tree = sanitize(tree)
                if suffix == ".toml":
                    tree = sanitize_keys(tree)
            loaded[path] = tree
        return loaded

    def _plan(
        self,
        selected: dict[str, tuple[ExportFileInfo, Path]],
        loaded: dict[str, ConfigValue | bytes],
        options: ImportOptions,
        conflicts: list[ConfigConflict],
        warnings: list[str],
    ) -> list[_PlannedWrite]:
        """Merge incoming content with what is on disk."""
        strategy = options.merge_strategy
        plans: list[_PlannedWrite] = []
        for path, (info, target) in selected.items():
            incoming = loaded[path]
            current = target.read_bytes() if target.is_file() else None

            if isinstance(incoming, bytes):
                if current is not None and strategy is MergeStrategy.SKIP_EXISTING:
                    logger.debug("Keeping existing %s", target)
                    continue
                if current is not None and current != incoming and strategy is MergeStrategy.MERGE:
                    conflicts.append(
                        ConfigConflict(
                            category=info.category,
                            name=path,
                            existing=current.decode("utf-8", errors="replace"),
                            incoming=incoming.decode("utf-8", errors="replace"),
                        )
                    )
                    choice = options.resolutions.get(path)
                    if choice is ConflictChoice.USE_EXISTING:
                        logger.debug("Keeping existing %s by choice", target)
                        continue
                    if choice is ConflictChoice.RENAME:
                        target = renamed_target(target)
                        current = None
                content = incoming
            else:
                suffix = target.suffix.lower()
                existing: ConfigValue = None
                if current is not None:
                    try:
                        existing = parse_config(current, suffix)
                    except (ValueError, UnicodeDecodeError) as e:
                        msg = f"Cannot parse existing {target}: {e}"
                        raise MergeError(msg) from e

                incoming = carry_over_secrets(incoming, existing)
                result = merge_config(existing, incoming, strategy, info.category)
                conflicts.extend(result.conflicts)
                warnings.extend(f"Conflict: {w}" for w in result.warnings)
                merged = result.merged
                if options.resolutions and result.conflicts:
                    resolved = resolve_conflicts(merged, result.conflicts, options.resolutions)
                    warnings.extend(f"Conflict: {w}" for w in resolved.warnings)
                    merged = resolved.merged
                content = dump_config(merged, suffix)

            if content == current:
                logger.debug("Unchanged: %s", target)
                continue

            missing = find_placeholders(content.decode("utf-8", errors="replace"))
            if missing:
                warnings.append(
                    f"{target} contains redacted values; re-enter: {', '.join(missing)}"
                )
            plans.append(_PlannedWrite(info=info, target=target, content=content))
        return plans

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _failed(self, stage: ImportStage, error: str, **kwargs: object) -> ImportResult:
        logger.warning("Import failed during %s: %s", stage.value, error)
        return ImportResult(
            success=False,
            stage=ImportStage.FAILED,
            failed_stage=stage,
            error=error,
            **kwargs,  # type: ignore[arg-type]
        )

    def run(self, options: ImportOptions) -> ImportResult:
        """Run the import pipeline.

        Args:
            options: Import options.

        Returns:
            ImportResult. Validation and apply failures are reported in the
            result, never raised.
        """
        warnings: list[str] = []
        conflicts: list[ConfigConflict] = []

        # validating
        stage = self._enter(ImportStage.VALIDATING)
        problems = validate_import_options(options)
        if problems:
            return self._failed(stage, problems[0], errors=tuple(problems))

        validation = validate_package(options.package_path, self.context)
        warnings.extend(validation.warning_messages)
        if not validation.valid or validation.metadata is None:
            return self._failed(
                stage,
                "Package validation failed",
                errors=validation.error_messages,
                warnings=tuple(warnings),
            )
        metadata = validation.metadata

        selected = self._select(metadata, options.target_tool)
        if not selected:
            return self._failed(
                stage, "Package contains no files for the selected tool", warnings=tuple(warnings)
            )

        # backing-up
        snapshot: BackupSnapshot | None = None
        if options.backup:
            stage = self._enter(ImportStage.BACKING_UP)
            try:
                snapshot = self.backup_provider.create(target for _, target in selected.values())
            except (OSError, RuntimeError, ValueError) as e:
                return self._failed(stage, f"Backup failed: {e}", warnings=tuple(warnings))
        else:
            logger.info("Backup disabled; rollback will not be available")

        touched: list[Path] = []
        try:
            with tempfile.TemporaryDirectory(prefix="cfgport-import-") as tmp:
                stage = self._enter(ImportStage.EXTRACTING)
                extracted = Path(tmp)
                try:
                    extract_archive(options.package_path, extracted)

                    stage = self._enter(ImportStage.ADAPTING)
                    loaded = self._adapt(
                        metadata, selected, extracted, options.include_sensitive, warnings
                    )

                    stage = self._enter(ImportStage.DETECTING_CONFLICTS)
                    plans = self._plan(selected, loaded, options, conflicts, warnings)
                    unmatched = sorted(set(options.resolutions) - {c.name for c in conflicts})
                    if unmatched:
                        names = ", ".join(unmatched)
                        warnings.append(f"No conflict matched resolution for: {names}")

                    stage = self._enter(ImportStage.APPLYING)
                    for plan in plans:
                        touched.append(plan.target)
                        write_atomic(plan.target, plan.content)
                        logger.debug("Wrote %s", plan.target)
                except (PortabilityError, OSError, ValueError) as e:
                    raise _ImportFailed(stage, e) from e
        except _ImportFailed as failure:
            return self._rollback(failure, options, snapshot, touched, conflicts, warnings)

        self._enter(ImportStage.COMPLETE)
        logger.info("Imported %d files", len(touched))
        return ImportResult(
            success=True,
            stage=ImportStage.COMPLETE,
            file_count=len(touched),
            backup_path=snapshot.root if snapshot else None,
            conflicts=tuple(conflicts),
            rollback_available=snapshot is not None,
            warnings=tuple(warnings),
        )

    def _rollback(
        self,
        failure: _ImportFailed,
        options: ImportOptions,
        snapshot: BackupSnapshot | None,
        touched: list[Path],
        conflicts: list[ConfigConflict],
        warnings: list[str],
    ) -> ImportResult:
        """Undo a failed import and describe the outcome."""
        error = f"Import failed during {failure.stage.value}: {failure.cause}"

        if not options.backup:
            if touched:
                warnings.append(
                    "Import failed without a backup; files written before the failure remain"
                )
            return self._failed(
                failure.stage, error, conflicts=tuple(conflicts), warnings=tuple(warnings)
            )

        report = self.backup_provider.restore(snapshot, touched)
        if report.ok:
            warnings.append("Import failed but restored to prior state")
            return self._failed(
                failure.stage,
                error,
                backup_path=snapshot.root if snapshot else None,
                conflicts=tuple(conflicts),
                rollback_available=False,
                warnings=tuple(warnings),
            )

        location = snapshot.root if snapshot else None
        warnings.extend(f"Rollback: {problem}" for problem in report.failed)
        return self._failed(
            failure.stage,
            f"{error}. Import failed, backup retained at {location}, manual recovery required",
            backup_path=location,
            conflicts=tuple(conflicts),
            rollback_available=True,
            warnings=tuple(warnings),
        )

"""Package validation.

Checks a package before anything touches the filesystem. Fatal problems
(unreadable archive, missing or malformed manifest) stop validation early;
every other check runs to completion so the caller sees all findings in
one report.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from cfgport import __version__
from cfgport.core.platform import PlatformContext
from cfgport.portability.errors import FormatError, IntegrityError
from cfgport.portability.layout import LayoutError, split_archive_path
from cfgport.portability.models import (
    FORMAT_VERSION,
    MANIFEST_NAME,
    MIN_FORMAT_VERSION,
    ExportMetadata,
    ExportOptions,
    ExportScope,
    ImportOptions,
    IssueKind,
    MergeStrategy,
)
from cfgport.portability.package import checksum, declared_version, load_manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One validation finding.

    Attributes:
        kind: Category of the finding.
        message: Human-readable description.
        path: Archive path the finding refers to, if any.
    """

    kind: IssueKind
    message: str
    path: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating a package.

    Attributes:
        valid: True when there are no errors.
        errors: Fatal findings.
        warnings: Non-fatal findings.
        metadata: Parsed manifest, None when it could not be read.
        platform_compatible: False when the package crosses path families.
        version_compatible: False when the schema version is unsupported.
    """

    valid: bool
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    metadata: ExportMetadata | None = None
    platform_compatible: bool = True
    version_compatible: bool = True

    def errors_of(self, kind: IssueKind) -> list[ValidationIssue]:
        """Get the errors of one kind."""
        return [issue for issue in self.errors if issue.kind is kind]

    @property
    def error_messages(self) -> tuple[str, ...]:
        """Error messages, in order."""
        return tuple(issue.message for issue in self.errors)

    @property
    def warning_messages(self) -> tuple[str, ...]:
        """Warning messages, in order."""
        return tuple(issue.message for issue in self.warnings)


def parse_version(version: str) -> tuple[int, int]:
    """Parse a ``major.minor`` schema version.

    Raises:
        ValueError: If the version is not two dot-separated integers.
    """
    parts = version.strip().split(".")
    if len(parts) != 2:
        msg = f"Invalid format version: {version!r}"
        raise ValueError(msg)
    try:
        return int(parts[0]), int(parts[1])
    except ValueError as e:
        msg = f"Invalid format version: {version!r}"
        raise ValueError(msg) from e


def is_supported_version(version: str) -> bool:
    """Check if a manifest schema version can be read by this engine."""
    try:
        parsed = parse_version(version)
    except ValueError:
        return False
    newest = parse_version(FORMAT_VERSION)
    oldest = parse_version(MIN_FORMAT_VERSION)
    return parsed[0] == newest[0] and oldest <= parsed <= newest


def _fail(kind: IssueKind, message: str) -> ValidationResult:
    return ValidationResult(valid=False, errors=(ValidationIssue(kind, message),))


def validate_package(path: Path, context: PlatformContext | None = None) -> ValidationResult:
    """Validate a package archive.

    Args:
        path: Package to validate.
        context: Target platform context. When given, the package's source
            platform is compared against it.

    Returns:
        ValidationResult. Nothing is raised; every problem is reported as
        an issue.
    """
    logger.debug("Validating package %s", path)

    if not path.is_file() or not zipfile.is_zipfile(path):
        return _fail(IssueKind.FORMAT, f"Corrupt archive: {path} is not a readable package")

    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    try:
        with zipfile.ZipFile(path) as archive:
            names = set(archive.namelist())
            if not names:
                return _fail(IssueKind.FORMAT, f"Corrupt archive: {path} is empty")

            if MANIFEST_NAME not in names:
                return _fail(IssueKind.FORMAT, f"Package has no {MANIFEST_NAME}")
            data = archive.read(MANIFEST_NAME)

            version = declared_version(data)
            if version is not None and not is_supported_version(version):
                issue = ValidationIssue(
                    IssueKind.VERSION,
                    f"Unsupported format version {version} "
                    f"(supported: {MIN_FORMAT_VERSION} to {FORMAT_VERSION})",
                )
                return ValidationResult(valid=False, errors=(issue,), version_compatible=False)

            try:
                metadata = load_manifest(data)
            except FormatError as e:
                return _fail(IssueKind.FORMAT, str(e))

            for info in metadata.files:
                if info.path not in names:
                    missing = IntegrityError(info.path)
                    errors.append(ValidationIssue(IssueKind.INTEGRITY, str(missing), info.path))
                    continue
                if checksum(archive.read(info.path)) != info.checksum:
                    warnings.append(
                        ValidationIssue(
                            IssueKind.CHECKSUM,
                            f"Checksum mismatch for {info.path}",
                            info.path,
                        )
                    )
    except (zipfile.BadZipFile, OSError) as e:
        return _fail(IssueKind.FORMAT, f"Corrupt archive: {e}")

    platform_compatible = True
    if context is not None and metadata.platform is not context.platform:
        source, target = metadata.platform, context.platform
        if source.is_windows != target.is_windows:
            platform_compatible = False
            warnings.append(
                ValidationIssue(
                    IssueKind.PLATFORM,
                    f"Package was created on {source.value}; paths will be adapted "
                    f"for {target.value}",
                )
            )
        else:
            warnings.append(
                ValidationIssue(
                    IssueKind.PLATFORM,
                    f"Package was created on {source.value} (importing on {target.value})",
                )
            )

    if metadata.engine_version != __version__:
        warnings.append(
            ValidationIssue(
                IssueKind.VERSION,
                f"Package was created by cfgport {metadata.engine_version} "
                f"(running {__version__})",
            )
        )

    for info in metadata.files:
        try:
            split_archive_path(info.path)
        except LayoutError as e:
            warnings.append(ValidationIssue(IssueKind.LAYOUT, str(e), info.path))

    result = ValidationResult(
        valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        metadata=metadata,
        platform_compatible=platform_compatible,
    )
    logger.debug(
        "Validation of %s: %d errors, %d warnings", path, len(errors), len(warnings)
    )
    return result


def validate_import_options(options: ImportOptions) -> list[str]:
    """Check import options before running an import.

    Returns:
        List of problems; empty when the options are usable.
    """
    problems: list[str] = []
    if not options.package_path.exists():
        problems.append(f"Package file not found: {options.package_path}")
    elif not options.package_path.is_file():
        problems.append(f"Package path is not a file: {options.package_path}")
    if options.resolutions and options.merge_strategy is not MergeStrategy.MERGE:
        problems.append(
            f"Conflict resolutions require the merge strategy, not {options.merge_strategy.value}"
        )
    return problems


def validate_export_options(options: ExportOptions) -> list[str]:
    """Check export options before collecting anything.

    Returns:
        List of problems; empty when the options are usable.
    """
    problems: list[str] = []
    if options.scope is ExportScope.CUSTOM and not options.custom_items:
        problems.append("Custom items are required when scope is custom")
    elif options.custom_items and options.scope is not ExportScope.CUSTOM:
        problems.append(f"Custom items require scope custom, not {options.scope.value}")
    return problems

"""Export pipeline: collect, sanitize, package, verify."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from cfgport.core.platform import PlatformContext
from cfgport.portability import collector
from cfgport.portability.errors import PortabilityError
from cfgport.portability.models import (
    MANIFEST_NAME,
    CollectedFile,
    ExportFileInfo,
    ExportItem,
    ExportMetadata,
    ExportOptions,
    ExportResult,
    ExportScope,
    ProgressCallback,
    ProgressInfo,
    ToolType,
)
from cfgport.portability.package import ArchiveEntry, build_archive, checksum, list_entries
from cfgport.portability.sanitizer import detect, detect_text, sanitize_content, should_sanitize
from cfgport.portability.validator import validate_export_options

logger = logging.getLogger(__name__)

PACKAGE_SUFFIX = ".zip"


def default_package_name(now: datetime | None = None) -> str:
    """File name of a package written to a directory."""
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    return f"cfgport-export-{stamp}{PACKAGE_SUFFIX}"


def resolve_output_path(output_path: Path | None, default_dir: Path) -> Path:
    """Decide where a package is written.

    A path ending in ``.zip`` is used as is; any other path is treated as a
    directory that receives a timestamped package name.
    """
    if output_path is None:
        return default_dir / default_package_name()
    if output_path.suffix.lower() == PACKAGE_SUFFIX:
        return output_path
    return output_path / default_package_name()


def _has_credentials(text: str) -> bool:
    try:
        return detect(json.loads(text))
    except json.JSONDecodeError:
        return detect_text(text)


class Exporter:
    """Packages live configuration into a portable archive.

    Args:
        context: Platform context of the machine being exported.
        progress: Optional callback receiving stage progress.
    """

    def __init__(
        self, context: PlatformContext, progress: ProgressCallback | None = None
    ) -> None:
        self.context = context
        self._progress = progress

    def _report(self, step: str, percent: int) -> None:
        logger.debug("Export progress: %s (%d%%)", step, percent)
        if self._progress is not None:
            self._progress(ProgressInfo(step=step, percent=percent))

    def collect(
        self, scope: ExportScope, tool_type: ToolType, items: Iterable[ExportItem] = ()
    ) -> list[CollectedFile]:
        """Enumerate the files relevant to a scope and tool selection."""
        return collector.collect(scope, tool_type, self.context, items)

    def _package_file(
        self, item: CollectedFile, include_sensitive: bool
    ) -> tuple[bytes, bool, bool]:
        """Read one file and sanitize it when needed.

        Returns:
            Tuple of (packaged bytes, whether redacted, whether it still
            carries credentials).
        """
        data = item.source.read_bytes()
        if not should_sanitize(item.archive_path):
            return data, False, False

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Cannot sanitize non-UTF-8 config file %s", item.source)
            return data, False, False

        if include_sensitive:
            return data, False, _has_credentials(text)

        sanitized, redacted = sanitize_content(text, item.archive_path)
        return sanitized.encode("utf-8"), redacted, False

    def build_package(self, files: list[CollectedFile], options: ExportOptions) -> ExportResult:
        """Sanitize the collected files and write the package.

        Args:
            files: Files to package.
            options: Export options.

        Returns:
            ExportResult. An empty file list yields ``success=False`` with
            ``nothing_to_export=True`` and no error.
        """
        if not files:
            logger.info("Nothing to export")
            return ExportResult(success=False, nothing_to_export=True)

        warnings: list[str] = []
        entries: list[ArchiveEntry] = []
        infos: list[ExportFileInfo] = []
        contains_credentials = False

        self._report("Sanitizing configuration", 30)
        try:
            for item in files:
                data, redacted, credentials = self._package_file(item, options.include_sensitive)
                contains_credentials = contains_credentials or credentials
                if redacted:
                    logger.info("Redacted credentials in %s", item.archive_path)
                entries.append(ArchiveEntry(destination=item.archive_path, content=data))
                infos.append(
                    ExportFileInfo(
                        path=item.archive_path,
                        category=item.category,
                        size=len(data),
                        checksum=checksum(data),
                        redacted=redacted,
                    )
                )

            used = {item.tool for item in files}
            tools = [t for t in ToolType if t in used]
            metadata = ExportMetadata(
                platform=self.context.platform,
                tool_types=tools,
                scope=[options.scope.value],
                contains_credentials=contains_credentials,
                files=infos,
                description=options.description,
            )

            self._report("Building package", 60)
            output = resolve_output_path(options.output_path, self.context.home_path)
            package_path = build_archive(entries, metadata, output)

            self._report("Verifying package", 90)
            names = list_entries(package_path)
            if not names or names[0] != MANIFEST_NAME or len(names) != len(infos) + 1:
                msg = f"Package verification failed for {package_path}"
                raise PortabilityError(msg)
            package_size = package_path.stat().st_size
        except (PortabilityError, OSError) as e:
            logger.warning("Export failed: %s", e)
            return ExportResult(success=False, error=str(e))

        if contains_credentials:
            warnings.append("Package contains unredacted credentials; store it securely")

        self._report("Complete", 100)
        logger.info("Exported %d files to %s", len(infos), package_path)
        return ExportResult(
            success=True,
            package_path=package_path,
            file_count=len(infos),
            package_size=package_size,
            warnings=tuple(warnings),
        )

    def run(self, options: ExportOptions) -> ExportResult:
        """Collect and package in one step."""
        problems = validate_export_options(options)
        if problems:
            logger.warning("Invalid export options: %s", "; ".join(problems))
            return ExportResult(success=False, error=problems[0])

        self._report("Collecting files", 10)
        files = self.collect(options.scope, options.tool_type, options.custom_items)
        return self.build_package(files, options)

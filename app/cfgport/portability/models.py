"""Domain models for configuration export and import.

This module defines the enums shared by every stage of the engine, the
Pydantic manifest models serialized into each archive, and the immutable
result structures returned to callers.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cfgport import __version__
from cfgport.core.platform import PlatformType

# Manifest schema version written by this engine and oldest still readable.
FORMAT_VERSION = "1.0"
MIN_FORMAT_VERSION = "1.0"

MANIFEST_NAME = "manifest.json"


class ToolType(str, Enum):
    """AI coding tool whose configuration is packaged.

    Attributes:
        CLAUDE_CODE: Primary assistant (``~/.claude``).
        CODEX: Secondary assistant (``~/.codex``).
        ALL: Both tools (options only, never stored per file).
    """

    CLAUDE_CODE = "claude-code"
    CODEX = "codex"
    ALL = "all"

    def expand(self) -> tuple[ToolType, ...]:
        """Concrete tool types covered by this selection."""
        if self is ToolType.ALL:
            return (ToolType.CLAUDE_CODE, ToolType.CODEX)
        return (self,)


class ExportScope(str, Enum):
    """Subset of configuration categories an operation targets."""

    ALL = "all"
    WORKFLOWS = "workflows"
    MCP = "mcp"
    SETTINGS = "settings"
    CUSTOM = "custom"


class MergeStrategy(str, Enum):
    """Policy governing how incoming values interact with existing ones.

    Attributes:
        REPLACE: Incoming configuration wins entirely.
        MERGE: Deep merge, incoming wins on conflicting values.
        SKIP_EXISTING: Existing wins; incoming only fills absent keys.
    """

    REPLACE = "replace"
    MERGE = "merge"
    SKIP_EXISTING = "skip-existing"


class FileCategory(str, Enum):
    """Category tag of a packaged file."""

    SETTINGS = "settings"
    PROFILES = "profiles"
    WORKFLOWS = "workflows"
    AGENTS = "agents"
    MCP = "mcp"
    HOOKS = "hooks"
    SKILLS = "skills"


class PathKind(str, Enum):
    """Classification of a path string found in a config tree."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    ENV_VAR = "env-var"
    MIXED = "mixed"


class Resolution(str, Enum):
    """Suggested resolution of a configuration conflict."""

    KEEP_EXISTING = "keep-existing"
    USE_INCOMING = "use-incoming"
    NEEDS_MANUAL_REVIEW = "needs-manual-review"


class ConflictChoice(str, Enum):
    """User choice settling one configuration conflict.

    Attributes:
        USE_EXISTING: Keep the value currently on disk.
        USE_INCOMING: Take the value from the package.
        MERGE: Deep merge mappings, union lists, otherwise take incoming.
        RENAME: Keep the existing value and store the incoming one next to
            it under an ``_imported`` name.
    """

    USE_EXISTING = "use-existing"
    USE_INCOMING = "use-incoming"
    MERGE = "merge"
    RENAME = "rename"


class ImportStage(str, Enum):
    """States of the import pipeline, in order."""

    VALIDATING = "validating"
    BACKING_UP = "backing-up"
    EXTRACTING = "extracting"
    ADAPTING = "adapting"
    DETECTING_CONFLICTS = "detecting-conflicts"
    APPLYING = "applying"
    COMPLETE = "complete"
    FAILED = "failed"


class IssueKind(str, Enum):
    """Kind of a validation finding."""

    FORMAT = "format"
    INTEGRITY = "integrity"
    VERSION = "version"
    CHECKSUM = "checksum"
    PLATFORM = "platform"
    LAYOUT = "layout"


# =============================================================================
# Manifest models (serialized as manifest.json)
# =============================================================================


class ExportFileInfo(BaseModel):
    """One packaged file.

    Attributes:
        path: Archive-internal path, forward-slash separated.
        category: Category tag of the file.
        size: Size in bytes of the packaged content.
        checksum: SHA-256 hex digest of the packaged content.
        redacted: Whether sanitization redacted anything in this file.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: Annotated[str, Field(min_length=1, description="Archive-internal path")]
    category: Annotated[FileCategory, Field(description="Category tag")]
    size: Annotated[int, Field(ge=0, description="Size in bytes")]
    checksum: Annotated[str, Field(min_length=1, description="SHA-256 hex digest")]
    redacted: Annotated[bool, Field(description="Sanitization redacted values")] = False

    @field_validator("path")
    @classmethod
    def validate_archive_path(cls, v: str) -> str:
        """Reject platform-specific or escaping archive paths."""
        if "\\" in v:
            msg = f"Archive path must use forward slashes: {v}"
            raise ValueError(msg)
        if v.startswith("/") or ".." in v.split("/"):
            msg = f"Archive path must be relative and stay inside the package: {v}"
            raise ValueError(msg)
        return v


class ExportMetadata(BaseModel):
    """Archive table of contents.

    Attributes:
        format_version: Manifest schema version.
        engine_version: cfgport version that wrote the archive.
        export_date: Creation timestamp (UTC).
        platform: Source platform identifier.
        tool_types: Tools covered by the archive.
        scope: Scope labels included in the export.
        contains_credentials: True if any file still carries real secrets.
        files: Ordered list of packaged files.
        description: Optional free-form description.
        tags: Optional categorization tags.
    """

    model_config = ConfigDict(extra="forbid")

    format_version: Annotated[str, Field(description="Manifest schema version")] = FORMAT_VERSION
    engine_version: Annotated[str, Field(description="Engine version")] = __version__
    export_date: Annotated[
        datetime,
        Field(default_factory=lambda: datetime.now(UTC), description="Creation timestamp"),
    ]
    platform: Annotated[PlatformType, Field(description="Source platform")]
    tool_types: Annotated[list[ToolType], Field(min_length=1, description="Tools covered")]
    scope: Annotated[list[str], Field(default_factory=list, description="Scope labels")]
    contains_credentials: Annotated[
        bool, Field(description="Package carries unredacted secrets")
    ] = False
    files: Annotated[list[ExportFileInfo], Field(default_factory=list, description="Files")]
    description: Annotated[str | None, Field(description="Description")] = None
    tags: Annotated[list[str], Field(default_factory=list, description="Tags")]

    @field_validator("tool_types")
    @classmethod
    def validate_concrete_tools(cls, v: list[ToolType]) -> list[ToolType]:
        """Only concrete tools may be listed in a manifest."""
        if ToolType.ALL in v:
            msg = "Manifest tool_types must list concrete tools, not 'all'"
            raise ValueError(msg)
        return v

    @property
    def total_size(self) -> int:
        """Total size of all packaged files in bytes."""
        return sum(f.size for f in self.files)


# =============================================================================
# Engine value types
# =============================================================================


@dataclass(frozen=True, slots=True)
class PathMapping:
    """One path translation performed during adaptation.

    Attributes:
        original: Path string before adaptation.
        adapted: Path string after adaptation.
        kind: Classification of the original string.
        location: Dotted key path of the value inside the config tree.
        success: Whether the string was translated.
        warning: Manual-review note, None when the mapping is unremarkable.
    """

    original: str
    adapted: str
    kind: PathKind
    location: str = ""
    success: bool = True
    warning: str | None = None


@dataclass(frozen=True, slots=True)
class ConfigConflict:
    """A disagreement between existing and incoming configuration.

    Attributes:
        category: Config category the conflict belongs to.
        name: Identifier (dotted key, service id, or profile name).
        existing: Value currently on disk.
        incoming: Value from the package.
        resolution: Suggested resolution.
    """

    category: FileCategory
    name: str
    existing: Any
    incoming: Any
    resolution: Resolution = Resolution.USE_INCOMING


@dataclass(frozen=True, slots=True)
class ProgressInfo:
    """Progress report emitted at stage boundaries.

    Attributes:
        step: Human-readable stage label.
        percent: Monotonically increasing percentage (0-100).
    """

    step: str
    percent: int


ProgressCallback = Callable[[ProgressInfo], None]


@dataclass(frozen=True, slots=True)
class ExportItem:
    """A file or directory selected for a custom export.

    Attributes:
        category: Category tag given to the collected files.
        path: Location relative to the tool directory, e.g.
            ``commands/review.md`` or ``agents``.
        tool: Tool the item belongs to (None = every exported tool).
    """

    category: FileCategory
    path: str
    tool: ToolType | None = None

    def __post_init__(self) -> None:
        """Reject paths that leave the tool directory."""
        parts = PurePosixPath(self.path.replace("\\", "/")).parts
        if not parts:
            msg = "Export item path cannot be empty"
            raise ValueError(msg)
        if parts[0] == "/" or ":" in parts[0] or ".." in parts:
            msg = f"Export item path must be relative to the tool directory: {self.path}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ExportOptions:
    """Parameters of an export operation.

    Attributes:
        tool_type: Tool selection.
        scope: Categories to export.
        include_sensitive: Keep credentials in the package.
        output_path: Package file or directory (None = home directory).
        description: Free-form text stored in the manifest.
        custom_items: Files to export when ``scope`` is ``custom``.
    """

    tool_type: ToolType = ToolType.CLAUDE_CODE
    scope: ExportScope = ExportScope.ALL
    include_sensitive: bool = False
    output_path: Path | None = None
    description: str | None = None
    custom_items: tuple[ExportItem, ...] = ()


@dataclass(frozen=True, slots=True)
class ImportOptions:
    """Parameters of an import operation.

    Attributes:
        package_path: Archive to import.
        target_tool: Restrict the import to one tool (None = all in package).
        merge_strategy: How incoming config meets existing config.
        include_sensitive: Import credentials carried by the package.
        backup: Back up files before touching them.
        resolutions: Choices for individual conflicts, keyed by conflict
            name. Conflicts without a choice follow ``merge_strategy``.
    """

    package_path: Path
    target_tool: ToolType | None = None
    merge_strategy: MergeStrategy = MergeStrategy.MERGE
    include_sensitive: bool = False
    backup: bool = True
    resolutions: Mapping[str, ConflictChoice] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class CollectedFile:
    """A live configuration file selected for export.

    Attributes:
        source: Absolute path of the file on disk.
        archive_path: Destination path inside the archive.
        category: Category tag.
        tool: Tool the file belongs to.
    """

    source: Path
    archive_path: str
    category: FileCategory
    tool: ToolType


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Outcome of an export operation."""

    success: bool
    package_path: Path | None = None
    file_count: int = 0
    package_size: int = 0
    nothing_to_export: bool = False
    error: str | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Outcome of an import operation.

    Attributes:
        success: Whether the import completed.
        stage: Final state (COMPLETE or FAILED).
        failed_stage: Stage that failed, None on success.
        file_count: Number of files written.
        backup_path: Backup directory, if one was taken and kept.
        conflicts: Conflicts detected (and resolved by the strategy).
        rollback_available: Whether a backup remains usable for rollback.
        error: Summary of the failure, None on success.
        errors: Individual error messages (e.g. from validation).
        warnings: Non-fatal findings, populated even on success.
    """

    success: bool
    stage: ImportStage
    failed_stage: ImportStage | None = None
    file_count: int = 0
    backup_path: Path | None = None
    conflicts: tuple[ConfigConflict, ...] = ()
    rollback_available: bool = False
    error: str | None = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

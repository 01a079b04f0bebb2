"""Configuration export/import engine.

This package provides package building and validation, sensitive-data
sanitization, cross-platform path adaptation, conflict-aware merging,
and the export and import pipelines built on them.
"""

from cfgport.portability.backup import BackupProvider, BackupSnapshot, RestoreReport
from cfgport.portability.errors import (
    FormatError,
    IntegrityError,
    MergeError,
    ParseError,
    PortabilityError,
    VersionError,
)
from cfgport.portability.exporter import Exporter
from cfgport.portability.importer import Importer
from cfgport.portability.merger import MergeResult, merge_config, summarize_conflicts
from cfgport.portability.models import (
    ConfigConflict,
    ExportMetadata,
    ExportOptions,
    ExportResult,
    ExportScope,
    ImportOptions,
    ImportResult,
    ImportStage,
    MergeStrategy,
    ProgressInfo,
    ToolType,
)
from cfgport.portability.path_adapter import AdaptationResult, adapt, adapt_config
from cfgport.portability.validator import ValidationIssue, ValidationResult, validate_package

__all__ = [
    "AdaptationResult",
    "BackupProvider",
    "BackupSnapshot",
    "ConfigConflict",
    "ExportMetadata",
    "ExportOptions",
    "ExportResult",
    "ExportScope",
    "Exporter",
    "FormatError",
    "ImportOptions",
    "ImportResult",
    "ImportStage",
    "Importer",
    "IntegrityError",
    "MergeError",
    "MergeResult",
    "MergeStrategy",
    "ParseError",
    "PortabilityError",
    "ProgressInfo",
    "RestoreReport",
    "ToolType",
    "ValidationIssue",
    "ValidationResult",
    "VersionError",
    "adapt",
    "adapt_config",
    "merge_config",
    "summarize_conflicts",
    "validate_package",
]

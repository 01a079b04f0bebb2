"""Collection of live configuration files for export.

Each tool's exportable files are declared in :data:`SOURCES`. Collection
walks the declarations that match the requested scope and tool and keeps
whatever exists; optional components that are absent are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from cfgport.core.platform import PlatformContext
from cfgport.portability.layout import archive_path, tool_dir
from cfgport.portability.models import (
    CollectedFile,
    ExportItem,
    ExportScope,
    FileCategory,
    ToolType,
)

logger = logging.getLogger(__name__)

# Scopes that include each file category.
CATEGORY_SCOPES: dict[FileCategory, frozenset[ExportScope]] = {
    FileCategory.SETTINGS: frozenset({ExportScope.ALL, ExportScope.SETTINGS}),
    FileCategory.PROFILES: frozenset({ExportScope.ALL}),
    FileCategory.WORKFLOWS: frozenset({ExportScope.ALL, ExportScope.WORKFLOWS}),
    FileCategory.AGENTS: frozenset({ExportScope.ALL, ExportScope.WORKFLOWS}),
    FileCategory.MCP: frozenset({ExportScope.ALL, ExportScope.MCP}),
    FileCategory.HOOKS: frozenset({ExportScope.ALL}),
    FileCategory.SKILLS: frozenset({ExportScope.ALL}),
}


@dataclass(frozen=True, slots=True)
class Source:
    """An exportable file or directory of one tool.

    Attributes:
        tool: Tool owning the source.
        category: Category tag of the collected files.
        relative: Location relative to the tool directory.
        directory: Whether every file below ``relative`` is collected.
    """

    tool: ToolType
    category: FileCategory
    relative: str
    directory: bool = False


SOURCES: tuple[Source, ...] = (
    # claude-code
    Source(ToolType.CLAUDE_CODE, FileCategory.SETTINGS, "settings.json"),
    Source(ToolType.CLAUDE_CODE, FileCategory.SETTINGS, "CLAUDE.md"),
    Source(ToolType.CLAUDE_CODE, FileCategory.PROFILES, "profiles.toml"),
    Source(ToolType.CLAUDE_CODE, FileCategory.WORKFLOWS, "commands", directory=True),
    Source(ToolType.CLAUDE_CODE, FileCategory.AGENTS, "agents", directory=True),
    Source(ToolType.CLAUDE_CODE, FileCategory.MCP, "mcp-settings.json"),
    Source(ToolType.CLAUDE_CODE, FileCategory.HOOKS, "hooks", directory=True),
    Source(ToolType.CLAUDE_CODE, FileCategory.SKILLS, "skills", directory=True),
    # codex
    Source(ToolType.CODEX, FileCategory.SETTINGS, "config.toml"),
    Source(ToolType.CODEX, FileCategory.SETTINGS, "AGENTS.md"),
    Source(ToolType.CODEX, FileCategory.PROFILES, "auth.json"),
    Source(ToolType.CODEX, FileCategory.WORKFLOWS, "prompts", directory=True),
    Source(ToolType.CODEX, FileCategory.AGENTS, "agents", directory=True),
    Source(ToolType.CODEX, FileCategory.MCP, "mcp.json"),
)


def sources_for(scope: ExportScope, tool_type: ToolType) -> list[Source]:
    """Get the declared sources relevant to a scope and tool selection."""
    tools = tool_type.expand()
    return [s for s in SOURCES if s.tool in tools and scope in CATEGORY_SCOPES[s.category]]


def _expand(source: Source, base: Path) -> list[CollectedFile]:
    location = base / source.relative

    if not source.directory:
        if not location.is_file():
            logger.debug("Skipping absent file %s", location)
            return []
        return [
            CollectedFile(
                source=location,
                archive_path=archive_path(source.category, source.tool, source.relative),
                category=source.category,
                tool=source.tool,
            )
        ]

    if not location.is_dir():
        logger.debug("Skipping absent directory %s", location)
        return []

    return [
        CollectedFile(
            source=path,
            archive_path=archive_path(source.category, source.tool, path.relative_to(base)),
            category=source.category,
            tool=source.tool,
        )
        for path in sorted(location.rglob("*"))
        if path.is_file()
    ]


def collect_custom(
    items: Iterable[ExportItem],
    tool_type: ToolType,
    context: PlatformContext,
) -> list[CollectedFile]:
    """Enumerate the files named by a custom selection.

    Each item is looked up in the directory of its own tool, or of every
    selected tool when it names none. Directories contribute every file
    below them. Missing items are skipped; a file selected twice is
    packaged once.

    Args:
        items: Selected files and directories.
        tool_type: Tool selection applied to items without a tool.
        context: Platform context providing the home directory.

    Returns:
        Collected files in selection order.
    """
    selection = list(items)
    files: dict[str, CollectedFile] = {}
    for item in selection:
        tools = item.tool.expand() if item.tool is not None else tool_type.expand()
        for tool in tools:
            base = tool_dir(tool, context)
            relative = str(PurePosixPath(item.path.replace("\\", "/")))
            source = Source(tool, item.category, relative, directory=(base / relative).is_dir())
            for collected in _expand(source, base):
                files.setdefault(collected.archive_path, collected)

    logger.info("Collected %d files from %d custom items", len(files), len(selection))
    return list(files.values())


def collect(
    scope: ExportScope,
    tool_type: ToolType,
    context: PlatformContext,
    items: Iterable[ExportItem] = (),
) -> list[CollectedFile]:
    """Enumerate the files to export.

    Args:
        scope: Categories to include.
        tool_type: Tool selection (``all`` covers both tools).
        context: Platform context providing the home directory.
        items: Selection used when ``scope`` is ``custom``.

    Returns:
        Collected files in declaration order; absent files are skipped.
    """
    if scope is ExportScope.CUSTOM:
        return collect_custom(items, tool_type, context)

    files: list[CollectedFile] = []
    for source in sources_for(scope, tool_type):
        files.extend(_expand(source, tool_dir(source.tool, context)))

    logger.info(
        "Collected %d files (scope=%s, tool=%s)", len(files), scope.value, tool_type.value
    )
    return files

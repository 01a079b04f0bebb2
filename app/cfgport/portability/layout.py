"""Archive layout shared by the exporter and the importer.

Every packaged file lives at ``<prefix>/<tool>/<path>`` where ``prefix``
encodes the kind of content, ``tool`` is the tool type value, and
``path`` is the file's location relative to the tool's home directory:

    configs/claude-code/settings.json  ->  ~/.claude/settings.json
    workflows/codex/prompts/review.md  ->  ~/.codex/prompts/review.md

Both directions go through this module so the two sides always agree.
"""

from pathlib import Path, PurePosixPath

from cfgport.core.platform import PlatformContext
from cfgport.portability.models import FileCategory, ToolType

# Directory under the user's home holding each tool's configuration.
TOOL_DIRS: dict[ToolType, str] = {
    ToolType.CLAUDE_CODE: ".claude",
    ToolType.CODEX: ".codex",
}

# Archive prefix per file category.
CATEGORY_PREFIXES: dict[FileCategory, str] = {
    FileCategory.SETTINGS: "configs",
    FileCategory.PROFILES: "configs",
    FileCategory.WORKFLOWS: "workflows",
    FileCategory.AGENTS: "workflows",
    FileCategory.MCP: "mcp",
    FileCategory.HOOKS: "hooks",
    FileCategory.SKILLS: "skills",
}

PREFIXES: frozenset[str] = frozenset(CATEGORY_PREFIXES.values())


class LayoutError(ValueError):
    """Raised when an archive path does not follow the package layout."""


def tool_dir(tool: ToolType, context: PlatformContext) -> Path:
    """Get the configuration directory of a tool for a platform context.

    Raises:
        LayoutError: If ``tool`` is not a concrete tool type.
    """
    try:
        name = TOOL_DIRS[tool]
    except KeyError as e:
        msg = f"No configuration directory for tool type: {tool.value}"
        raise LayoutError(msg) from e
    return context.home_path / name


def archive_path(category: FileCategory, tool: ToolType, relative: str | Path) -> str:
    """Build the archive-internal path of a file.

    Args:
        category: Category tag of the file.
        tool: Concrete tool the file belongs to.
        relative: Location relative to the tool directory.

    Returns:
        Forward-slash separated archive path.
    """
    rel = PurePosixPath(*Path(relative).parts)
    return str(PurePosixPath(CATEGORY_PREFIXES[category], tool.value, rel))


def split_archive_path(path: str) -> tuple[str, ToolType, PurePosixPath]:
    """Split an archive path into prefix, tool and tool-relative path.

    Raises:
        LayoutError: If the path has an unknown prefix or tool, escapes the
            tool directory, or names no file.
    """
    parts = PurePosixPath(path).parts
    if len(parts) < 3:
        msg = f"Archive path does not name a file under a tool prefix: {path}"
        raise LayoutError(msg)

    prefix, tool_value, *rest = parts
    if prefix not in PREFIXES:
        msg = f"Unknown archive prefix '{prefix}' in {path}"
        raise LayoutError(msg)
    try:
        tool = ToolType(tool_value)
    except ValueError as e:
        msg = f"Unknown tool '{tool_value}' in {path}"
        raise LayoutError(msg) from e
    if tool not in TOOL_DIRS:
        msg = f"Archive path must name a concrete tool: {path}"
        raise LayoutError(msg)
    if ".." in rest or any(p in ("", ".") for p in rest):
        msg = f"Archive path escapes the tool directory: {path}"
        raise LayoutError(msg)

    return prefix, tool, PurePosixPath(*rest)


def resolve_target(path: str, context: PlatformContext) -> Path:
    """Map an archive path back to its destination on this machine.

    Args:
        path: Archive-internal path.
        context: Target platform context.

    Returns:
        Absolute destination path under the tool's directory.

    Raises:
        LayoutError: If the path does not follow the layout.
    """
    _, tool, relative = split_archive_path(path)
    return tool_dir(tool, context).joinpath(*relative.parts)


def tool_of(path: str) -> ToolType:
    """Get the tool an archive path belongs to."""
    return split_archive_path(path)[1]

"""Export command for packaging configuration.

This module provides the `cfgport export` command which collects the
configuration of the selected tools and writes a portable package.
"""

from pathlib import Path
from typing import Annotated

import typer

from cfgport.cli.display import print_warnings
from cfgport.core.config import ConfigError, load_config_or_default
from cfgport.core.platform import PlatformContext
from cfgport.portability.exporter import Exporter
from cfgport.portability.models import (
    ExportItem,
    ExportOptions,
    ExportScope,
    FileCategory,
    ToolType,
)
from cfgport.utils.formatting import format_size, print_error, print_info, print_success


def _parse_items(values: list[str]) -> tuple[ExportItem, ...]:
    """Parse ``category:path`` selections given with --item.

    Raises:
        ValueError: If a selection is malformed or names an unknown category.
    """
    items: list[ExportItem] = []
    for value in values:
        category, sep, path = value.partition(":")
        if not sep or not path:
            msg = f"Expected category:path, got '{value}'"
            raise ValueError(msg)
        try:
            items.append(ExportItem(category=FileCategory(category.lower()), path=path))
        except ValueError as e:
            msg = f"Invalid item '{value}': {e}"
            raise ValueError(msg) from e
    return tuple(items)


def export_config(
    ctx: typer.Context,
    tool: Annotated[
        ToolType,
        typer.Option(
            "--tool",
            "-t",
            help="Tool to export: claude-code, codex, or all.",
            case_sensitive=False,
        ),
    ] = ToolType.CLAUDE_CODE,
    scope: Annotated[
        ExportScope,
        typer.Option(
            "--scope",
            "-s",
            help="What to export: all, workflows, mcp, settings, or custom.",
            case_sensitive=False,
        ),
    ] = ExportScope.ALL,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Package file (.zip) or directory to write it to.",
        ),
    ] = None,
    include_sensitive: Annotated[
        bool,
        typer.Option(
            "--include-sensitive",
            help="Keep API keys and tokens in the package.",
        ),
    ] = False,
    description: Annotated[
        str | None,
        typer.Option(
            "--description",
            "-d",
            help="Description stored in the package manifest.",
        ),
    ] = None,
    item: Annotated[
        list[str] | None,
        typer.Option(
            "--item",
            "-i",
            help="File or directory to export with --scope custom, as category:path "
            "relative to the tool directory. Repeatable.",
        ),
    ] = None,
) -> None:
    """Export configuration to a portable package.

    Credentials are redacted unless --include-sensitive is given.

    Examples:
        cfgport export                              # Everything for claude-code
        cfgport export --tool all --scope mcp       # MCP services of both tools
        cfgport export -o ~/backups/                # Timestamped package in a directory
        cfgport export -o team.zip --scope workflows
        cfgport export -s custom -i workflows:commands/review.md -i settings:CLAUDE.md
    """
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))

    try:
        config = load_config_or_default()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    try:
        custom_items = _parse_items(item or [])
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    output_path = output or config.output_dir
    if output_path is not None:
        output_path = output_path.expanduser()

    options = ExportOptions(
        tool_type=tool,
        scope=scope,
        include_sensitive=include_sensitive or config.include_sensitive,
        output_path=output_path,
        description=description,
        custom_items=custom_items,
    )

    exporter = Exporter(PlatformContext.current())
    result = exporter.run(options)

    if result.nothing_to_export:
        print_info(f"Nothing to export for {tool.value} (scope: {scope.value}).")
        return

    if not result.success:
        print_error(result.error or "Export failed.")
        raise typer.Exit(code=1)

    if not quiet:
        print_warnings(result.warnings)
        if options.include_sensitive:
            print_info("Credentials were kept in the package.")

    print_success(
        f"Exported {result.file_count} files ({format_size(result.package_size)}) "
        f"to {result.package_path}"
    )

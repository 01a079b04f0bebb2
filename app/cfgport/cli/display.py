"""Shared Rich display functions for export and import results.

Provides table builders and summary printers used by the export, import
and inspect commands.
"""

from rich.table import Table

from cfgport.portability.merger import summarize_conflicts
from cfgport.portability.models import ConfigConflict, ExportMetadata, Resolution
from cfgport.utils.formatting import console, create_file_table, format_size, print_warning


def create_conflicts_table(conflicts: list[ConfigConflict]) -> Table:
    """Create a Rich table listing configuration conflicts.

    Args:
        conflicts: Conflicts detected during import.

    Returns:
        Rich Table with category, name and resolution columns.
    """
    table = Table(
        title="Conflicts",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Category", width=10)
    table.add_column("Name", no_wrap=True)
    table.add_column("Resolution")

    for conflict in conflicts:
        if conflict.resolution is Resolution.NEEDS_MANUAL_REVIEW:
            resolution = f"[warning]{conflict.resolution.value}[/warning]"
        else:
            resolution = f"[muted]{conflict.resolution.value}[/muted]"
        table.add_row(
            conflict.category.value,
            f"[conflict]{conflict.name}[/conflict]",
            resolution,
        )

    return table


def print_conflict_summary(conflicts: list[ConfigConflict]) -> None:
    """Print conflict counts by category, then the conflict table."""
    if not conflicts:
        return

    summary = summarize_conflicts(conflicts)
    counts = ", ".join(f"{cat.value}: {n}" for cat, n in summary.by_category.items())
    console.print(f"\n[conflict]{summary.total} conflicts[/] ({counts})")
    if summary.critical:
        console.print(f"  [warning]{len(summary.critical)} affect MCP services or profiles[/]")
    console.print(create_conflicts_table(conflicts))


def print_warnings(warnings: tuple[str, ...] | list[str]) -> None:
    """Print each warning on stderr."""
    for warning in warnings:
        print_warning(warning)


def print_manifest(metadata: ExportMetadata) -> None:
    """Print a package manifest: header details and a table of files."""
    console.print(f"\n[bold_header]Package created {metadata.export_date:%Y-%m-%d %H:%M UTC}[/]")
    console.print(f"  Platform: {metadata.platform.value}")
    console.print(f"  Tools: {', '.join(t.value for t in metadata.tool_types)}")
    console.print(f"  Scope: {', '.join(metadata.scope) or '-'}")
    console.print(f"  Format: {metadata.format_version} (cfgport {metadata.engine_version})")
    if metadata.description:
        console.print(f"  Description: {metadata.description}")
    if metadata.contains_credentials:
        console.print("  [warning]Contains unredacted credentials[/]")

    table = create_file_table()
    for info in metadata.files:
        table.add_row(
            info.path,
            info.category.value,
            format_size(info.size),
            "[redacted]yes[/]" if info.redacted else "",
        )
    console.print(table)
    console.print(f"[muted]{len(metadata.files)} files, {format_size(metadata.total_size)}[/]")

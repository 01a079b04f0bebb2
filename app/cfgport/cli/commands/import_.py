"""Import command for restoring configuration.

This module provides the `cfgport import` command which validates a
package, backs up the files it will touch, and merges its contents into
the local configuration.
"""

from pathlib import Path
from typing import Annotated

import typer

from cfgport.cli.display import print_conflict_summary, print_warnings
from cfgport.core.config import ConfigError, load_config_or_default
from cfgport.core.platform import PlatformContext
from cfgport.portability.importer import Importer
from cfgport.portability.models import ConflictChoice, ImportOptions, MergeStrategy, ToolType
from cfgport.utils.formatting import console, print_error, print_info, print_success


def _parse_resolutions(values: list[str]) -> dict[str, ConflictChoice]:
    """Parse ``name=choice`` pairs given with --resolve.

    Raises:
        ValueError: If a pair is malformed or the choice is unknown.
    """
    resolutions: dict[str, ConflictChoice] = {}
    for value in values:
        name, sep, choice = value.rpartition("=")
        if not sep or not name:
            msg = f"Expected name=choice, got '{value}'"
            raise ValueError(msg)
        try:
            resolutions[name] = ConflictChoice(choice.lower())
        except ValueError as e:
            allowed = ", ".join(c.value for c in ConflictChoice)
            msg = f"Unknown choice '{choice}' for {name} (expected one of: {allowed})"
            raise ValueError(msg) from e
    return resolutions


def import_config(
    ctx: typer.Context,
    package: Annotated[
        Path,
        typer.Argument(help="Package file to import."),
    ],
    strategy: Annotated[
        MergeStrategy | None,
        typer.Option(
            "--strategy",
            "-s",
            help="How to combine with existing config: replace, merge, or skip-existing.",
            case_sensitive=False,
        ),
    ] = None,
    tool: Annotated[
        ToolType | None,
        typer.Option(
            "--tool",
            "-t",
            help="Only import files of one tool: claude-code or codex.",
            case_sensitive=False,
        ),
    ] = None,
    include_sensitive: Annotated[
        bool,
        typer.Option(
            "--include-sensitive",
            help="Import API keys and tokens carried by the package.",
        ),
    ] = False,
    no_backup: Annotated[
        bool,
        typer.Option(
            "--no-backup",
            help="Do not back up existing files (disables automatic rollback).",
        ),
    ] = False,
    resolve: Annotated[
        list[str] | None,
        typer.Option(
            "--resolve",
            "-r",
            help="Settle one conflict as name=choice, where choice is use-existing, "
            "use-incoming, merge, or rename. Repeatable.",
        ),
    ] = None,
) -> None:
    """Import configuration from a package.

    Existing files are backed up first and restored automatically if the
    import fails.

    Examples:
        cfgport import package.zip                        # Merge into current config
        cfgport import package.zip --strategy replace     # Incoming config wins
        cfgport import package.zip -s skip-existing       # Only add what is missing
        cfgport import package.zip --tool codex
        cfgport import package.zip -r model=use-existing -r filesystem=rename
    """
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))

    try:
        config = load_config_or_default()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    try:
        resolutions = _parse_resolutions(resolve or [])
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    options = ImportOptions(
        package_path=package.expanduser(),
        target_tool=tool,
        merge_strategy=strategy or config.merge_strategy,
        include_sensitive=include_sensitive or config.include_sensitive,
        backup=config.backup and not no_backup,
        resolutions=resolutions,
    )

    importer = Importer(PlatformContext.current())
    result = importer.run(options)

    if not quiet:
        print_warnings(result.warnings)

    if not result.success:
        print_error(result.error or "Import failed.")
        for error in result.errors:
            console.print(f"  - {error}")
        if result.rollback_available and result.backup_path is not None:
            print_info(f"Backup retained at {result.backup_path}")
        raise typer.Exit(code=1)

    if not quiet:
        print_conflict_summary(list(result.conflicts))
        if result.backup_path is not None:
            print_info(f"Backup saved to {result.backup_path}")

    print_success(
        f"Imported {result.file_count} files using strategy '{options.merge_strategy.value}'."
    )

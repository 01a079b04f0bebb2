"""Init command implementation.

Creates the user configuration file holding the defaults applied to
export and import.
"""

from pathlib import Path
from typing import Annotated

import typer

from cfgport.core.config import ConfigError, PortConfig, save_config
from cfgport.core.paths import ensure_config_dir, get_config_path
from cfgport.portability.models import MergeStrategy
from cfgport.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)


def _show_config_summary(config: PortConfig, output_path: Path) -> None:
    """Display the defaults about to be written.

    Args:
        config: The configuration to summarize.
        output_path: Path where the config will be saved.
    """
    console.print()
    console.print("[bold]Configuration Summary[/bold]")
    console.print(f"  Output: [muted]{output_path}[/muted]")
    console.print()
    console.print(f"  Merge strategy: [info]{config.merge_strategy.value}[/info]")
    console.print(f"  Backup before import: [info]{'yes' if config.backup else 'no'}[/info]")
    console.print(
        f"  Include credentials: [info]{'yes' if config.include_sensitive else 'no'}[/info]"
    )
    output_dir = str(config.output_dir) if config.output_dir else "home directory"
    console.print(f"  Package directory: [muted]{output_dir}[/muted]")
    console.print()


def init_config(
    strategy: Annotated[
        MergeStrategy,
        typer.Option(
            "--strategy",
            "-s",
            help="Default merge strategy for imports.",
            case_sensitive=False,
        ),
    ] = MergeStrategy.MERGE,
    no_backup: Annotated[
        bool,
        typer.Option(
            "--no-backup",
            help="Do not back up existing files before importing by default.",
        ),
    ] = False,
    include_sensitive: Annotated[
        bool,
        typer.Option(
            "--include-sensitive",
            help="Keep API keys and tokens in packages by default.",
        ),
    ] = False,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            help="Default directory for exported packages.",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path for the config file.",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing config without prompting.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be created without writing files.",
        ),
    ] = False,
) -> None:
    """Create the cfgport configuration file.

    The file stores defaults for export and import. Command-line options
    always take precedence over it.

    Examples:
        cfgport init                              # Defaults in ~/.config/cfgport
        cfgport init --strategy skip-existing     # Never overwrite on import
        cfgport init --output-dir ~/backups       # Default package directory
        cfgport init --force                      # Overwrite existing config
    """
    output_path = output or get_config_path()

    if output_path.exists():
        if dry_run:
            print_warning(f"Config already exists: {output_path}")
            print_info("Would be overwritten with --force.")
        elif not force:
            print_error(f"Config already exists: {output_path}")
            print_info("Use --force to overwrite or specify a different path with --output.")
            raise typer.Exit(code=1)
        else:
            print_warning(f"Overwriting existing config: {output_path}")

    config = PortConfig(
        merge_strategy=strategy,
        backup=not no_backup,
        include_sensitive=include_sensitive,
        output_dir=output_dir.expanduser() if output_dir else None,
    )

    _show_config_summary(config, output_path)

    if dry_run:
        print_info("[DRY-RUN] No files were written.")
        return

    try:
        if output is None:
            ensure_config_dir()
        saved_path = save_config(config, output_path)
    except (ConfigError, RuntimeError) as e:
        print_error(f"Failed to save config: {e}")
        raise typer.Exit(code=1) from e

    print_success(f"Config created: {saved_path}")

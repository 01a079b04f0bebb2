"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer

from cfgport import __version__
from cfgport.cli.commands import export, import_, init, inspect, restore

# Create main Typer app
app = typer.Typer(
    name="cfgport",
    help="Export and import AI coding tool configuration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cfgport version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """cfgport - Portable configuration for AI coding tools.

    Package settings, credential profiles, MCP services and workflows
    into a single archive, and restore it on another machine.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.command(name="export")(export.export_config)
app.command(name="import")(import_.import_config)
app.command(name="inspect")(inspect.inspect_package)
app.command(name="restore")(restore.restore_backup)
app.command(name="init")(init.init_config)


if __name__ == "__main__":
    app()

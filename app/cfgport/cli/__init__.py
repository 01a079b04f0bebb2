"""CLI package for cfgport.

This package contains the Typer application and all subcommands.
"""

from cfgport.cli.main import app

__all__ = ["app"]

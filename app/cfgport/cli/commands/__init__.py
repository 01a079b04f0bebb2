"""CLI commands for cfgport.

This package contains all subcommand implementations.
"""

from cfgport.cli.commands import export, import_, inspect

__all__ = ["export", "import_", "inspect"]

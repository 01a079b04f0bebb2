"""Inspect command for examining packages.

This module provides the `cfgport inspect` command which validates a
package and summarizes its manifest without importing anything.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer

from cfgport.cli.display import print_manifest
from cfgport.core.platform import PlatformContext
from cfgport.portability.validator import validate_package
from cfgport.utils.formatting import console, print_error, print_success, print_warning


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def inspect_package(
    package: Annotated[
        Path,
        typer.Argument(help="Package file to inspect."),
    ],
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Validate a package and show its contents.

    Exits with code 1 when the package is invalid.

    Examples:
        cfgport inspect package.zip
        cfgport inspect package.zip --format json
    """
    result = validate_package(package.expanduser(), PlatformContext.current())

    if output_format == OutputFormat.JSON:
        data = {
            "valid": result.valid,
            "errors": [{"kind": i.kind.value, "message": i.message} for i in result.errors],
            "warnings": [{"kind": i.kind.value, "message": i.message} for i in result.warnings],
            "manifest": result.metadata.model_dump(mode="json") if result.metadata else None,
        }
        console.print_json(json.dumps(data))
        if not result.valid:
            raise typer.Exit(code=1)
        return

    if result.metadata is not None:
        print_manifest(result.metadata)

    for issue in result.warnings:
        print_warning(issue.message)

    if not result.valid:
        for issue in result.errors:
            print_error(issue.message)
        raise typer.Exit(code=1)

    print_success("Package is valid.")

"""CLI command modules."""

from typing import NoReturn

import click

from ghastoolkit.cli.progress import console, print_error
from ghastoolkit.core.config import load_config
from ghastoolkit.core.errors import ConfigError
from ghastoolkit.models.config import ToolkitConfig


def load_command_config(ctx: click.Context) -> ToolkitConfig:
    """Load configuration for a command, aborting on errors."""
    obj = ctx.find_root().obj or {}
    try:
        return load_config(obj.get("config_path"))
    except ConfigError as e:
        print_error(str(e))
        raise click.Abort()


def abort_with(ctx: click.Context, error: Exception) -> NoReturn:
    """Print an error (with traceback in debug mode) and abort."""
    print_error(str(error))
    obj = ctx.find_root().obj or {}
    if obj.get("debug"):
        console.print_exception()
    raise click.Abort()

"""CLI utilities."""

from pathlib import Path
from typing import Any

import click

from autotest.config.loader import load_config
from autotest.config.models import AutotestConfig
from autotest.core.errors import ConfigError
from autotest.core.logging import configure_logging


def resolve_root(path: Path | None = None) -> Path:
    """Absolute directory to operate on. Defaults to the current directory.

    Raises:
        click.ClickException: If the path is not a directory
    """
    root = (path if path is not None else Path.cwd()).resolve()
    if not root.is_dir():
        raise click.ClickException(f"Not a directory: {root}")
    return root


def load_cli_config(ctx: click.Context, root: Path, **overrides: Any) -> AutotestConfig:
    """Load config for ``root`` and apply its logging section.

    ``--verbose`` on the command group wins over the configured level.

    Raises:
        click.ClickException: If the config is invalid
    """
    try:
        config = load_config(root, **overrides)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    if verbose:
        configure_logging(level="DEBUG")
    else:
        configure_logging(config=config.logging)
    return config

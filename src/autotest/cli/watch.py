"""autotest watch command - run tests as folders change."""

import asyncio
from pathlib import Path

import click

from autotest.cli.utils import load_cli_config, resolve_root
from autotest.core.errors import AutotestError


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--debounce-ms", type=int, help="Quiet period before a changed folder is tested")
@click.option("--queue-depth", type=int, help="Capacity of the settle and result queues")
@click.pass_context
def watch_command(
    ctx: click.Context,
    path: Path | None,
    debounce_ms: int | None,
    queue_depth: int | None,
) -> None:
    """Watch a tree and re-run tests for each folder that changes.

    Every folder containing Go files is tested once at startup; that run
    becomes its baseline. Later runs report failures and coverage that
    moved since the baseline.

    PATH is the tree to watch. Defaults to the current directory.
    """
    from autotest.daemon.lifecycle import run_watch

    root = resolve_root(path)

    overrides: dict[str, int] = {}
    if debounce_ms is not None:
        overrides["debounce_ms"] = debounce_ms
    if queue_depth is not None:
        overrides["queue_depth"] = queue_depth
    config = load_cli_config(ctx, root, **({"watch": overrides} if overrides else {}))

    click.echo(f"Monitoring folder {root}")
    try:
        asyncio.run(run_watch(root, config))
    except KeyboardInterrupt:
        click.echo("\nStopped")
    except AutotestError as e:
        raise click.ClickException(str(e)) from e

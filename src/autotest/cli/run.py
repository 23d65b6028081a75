"""autotest run command - test one folder once."""

import asyncio
from pathlib import Path

import click

from autotest.cli.utils import load_cli_config, resolve_root


@click.command()
@click.argument("path", default=None, required=False, type=click.Path(exists=True, path_type=Path))
@click.pass_context
def run_command(ctx: click.Context, path: Path | None) -> None:
    """Run the tests of one folder and print the full result.

    No baseline is kept, so every function below full coverage is listed.
    Exits nonzero if the build or any test failed.

    PATH is the folder to test. Defaults to the current directory.
    """
    from autotest.core.presenter import ConsolePresenter
    from autotest.daemon.pipeline import run_once
    from autotest.testing.runner import GoTestRunner

    folder = resolve_root(path)
    config = load_cli_config(ctx, folder)

    runner = GoTestRunner.from_config(config.runner)
    try:
        result = asyncio.run(run_once(runner, folder))
    finally:
        runner.close()

    ConsolePresenter().present(result)
    if not result.is_clean:
        ctx.exit(1)

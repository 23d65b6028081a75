"""autotest CLI."""

import click

from autotest import __version__
from autotest.cli.run import run_command
from autotest.cli.watch import watch_command
from autotest.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="autotest")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """autotest - Re-run Go tests for every folder you edit."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(watch_command, name="watch")
cli.add_command(run_command, name="run")


if __name__ == "__main__":
    cli()

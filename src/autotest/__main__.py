"""Entry point for ``python -m autotest``."""

from autotest.cli.main import cli

if __name__ == "__main__":
    cli()

"""Main CLI entry point for SQLHelper."""

from __future__ import annotations

import click

from sqlhelper import __version__
from sqlhelper.cli.commands import register_commands
from sqlhelper.cli.commands.configuration import config_group
from sqlhelper.cli.commands.database import db_group
from sqlhelper.cli.utils import configure_logging, console


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.option("--config", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, version: bool, config: str, verbose: bool) -> None:
    """SQLHelper - parameterized SQL, generated inserts and bulk loads."""
    ctx.ensure_object(dict)
    ctx.obj.update({"config": config, "verbose": verbose})
    configure_logging(verbose)

    if version:
        console.print(f"SQLHelper v{__version__}")
        return

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


COMMAND_REGISTRY = [
    db_group,
    config_group,
]

register_commands(cli, COMMAND_REGISTRY)


if __name__ == "__main__":
    cli()

"""Shared CLI utilities for SQLHelper."""

from __future__ import annotations

import logging
from typing import Optional

import click
import pandas as pd
from rich.console import Console
from rich.table import Table

from sqlhelper.config import EnvironmentSettings, SQLHelperConfig, get_config
from sqlhelper.db import ConnectionStringManager, environment_loader

# Single console instance reused across CLI modules
console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Set the root log level from ``--verbose`` or SQLHELPER_LOG_LEVEL."""
    level = logging.DEBUG if verbose else getattr(logging, EnvironmentSettings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def load_config(ctx: click.Context) -> SQLHelperConfig:
    """Configuration named by ``--config``, or found in the default locations."""
    config_path = ctx.obj.get('config')
    return get_config(config_path, reload=config_path is not None)


def build_manager(config: SQLHelperConfig) -> ConnectionStringManager:
    """Connection-string manager for the configuration, with environment lookups."""
    prefix = EnvironmentSettings().connection_string_prefix
    return ConnectionStringManager.from_config(config, environment_loader(prefix))


def frame_to_table(frame: pd.DataFrame, title: Optional[str] = None, limit: int = 50) -> Table:
    """Render the first ``limit`` rows of a DataFrame as a rich table."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    for column in frame.columns:
        table.add_column(str(column), style="cyan")
    for row in frame.head(limit).itertuples(index=False):
        table.add_row(*["NULL" if pd.isna(value) else str(value) for value in row])
    return table


def print_exception(message: str, error: Exception, verbose: bool = False) -> None:
    """Render a formatted exception message.

    Args:
        message: Friendly context message to display before the exception.
        error: Original exception instance.
        verbose: When True, render the full traceback for debugging.
    """
    console.print(f"[red]{message}: {error}[/red]")
    if verbose:
        import traceback

        console.print(f"[dim]{traceback.format_exc()}[/dim]")

"""Database CLI commands."""

from __future__ import annotations

from typing import Optional

import click
from rich.table import Table

from sqlhelper.cli.utils import build_manager, console, frame_to_table, load_config, print_exception
from sqlhelper.db import DataConnection
from sqlhelper.db.drivers import parse_connection_string
from sqlhelper.exceptions import ConfigurationError, SQLHelperError


@click.group(name="db")
@click.pass_context
def db_group(ctx: click.Context) -> None:
    """Database connections and queries."""
    pass


@db_group.command(name="check")
@click.argument("key", required=False)
@click.option("--timeout", "-t", type=int, default=10, show_default=True, help="Login timeout in seconds")
@click.pass_context
def check_command(ctx: click.Context, key: Optional[str], timeout: int) -> None:
    """Check that configured connections can be opened."""
    try:
        config = load_config(ctx)
        manager = build_manager(config)
        keys = [key] if key else manager.keys()

        console.print("[bold blue]Checking Database Connections[/bold blue]\n")
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Connection", style="cyan")
        table.add_column("Status", style="yellow")

        failures = 0
        for name in keys:
            connection_string = manager.get_connection_string(name)
            ok = DataConnection.can_connect(connection_string, timeout, suppress_errors=True, settings=config)
            failures += 0 if ok else 1
            table.add_row(name, "[green]OK[/green]" if ok else "[red]FAILED[/red]")

        console.print(table)
        if failures:
            raise SystemExit(1)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration Error: {exc}[/red]")
        raise SystemExit(1) from exc


@db_group.command(name="query")
@click.argument("key")
@click.argument("sql")
@click.option("--timeout", "-t", type=int, help="Command timeout in seconds")
@click.option("--limit", type=int, default=50, show_default=True, help="Rows to display")
@click.pass_context
def query_command(ctx: click.Context, key: str, sql: str, timeout: Optional[int], limit: int) -> None:
    """Run a query and print its rows."""
    try:
        config = load_config(ctx)
        manager = build_manager(config)

        with DataConnection.from_key(key, manager, settings=config) as connection:
            frame = connection.query(sql, timeout=timeout)

        console.print(frame_to_table(frame, title=key, limit=limit))
        console.print(f"\n[dim]{len(frame)} row(s)[/dim]")
    except ConfigurationError as exc:
        console.print(f"[red]Configuration Error: {exc}[/red]")
        raise SystemExit(1) from exc
    except SQLHelperError as exc:
        print_exception("Query failed", exc, ctx.obj.get('verbose', False))
        raise SystemExit(1) from exc


@db_group.command(name="exists")
@click.argument("key")
@click.argument("name")
@click.pass_context
def exists_command(ctx: click.Context, key: str, name: str) -> None:
    """Check whether a table or view exists."""
    try:
        config = load_config(ctx)
        manager = build_manager(config)

        with DataConnection.from_key(key, manager, settings=config) as connection:
            found = connection.does_table_view_exist(name)

        if found:
            console.print(f"[green]{name} exists in {key}[/green]")
        else:
            console.print(f"[yellow]{name} was not found in {key}[/yellow]")
            raise SystemExit(1)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration Error: {exc}[/red]")
        raise SystemExit(1) from exc
    except SQLHelperError as exc:
        print_exception("Lookup failed", exc, ctx.obj.get('verbose', False))
        raise SystemExit(1) from exc


@db_group.command(name="connections")
@click.pass_context
def connections_command(ctx: click.Context) -> None:
    """List configured connections."""
    try:
        config = load_config(ctx)
        manager = build_manager(config)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Connection", style="cyan")
        table.add_column("Backend", style="green")
        table.add_column("Overridden", style="yellow")
        table.add_column("Default", style="blue")

        for name in manager.keys():
            try:
                backend = parse_connection_string(manager.get_connection_string(name)).get_backend_name()
            except ConfigurationError:
                backend = "invalid"
            table.add_row(
                name,
                backend,
                "yes" if manager.is_overridden(name) else "",
                "yes" if name == config.default_connection else "",
            )

        console.print(table)
    except ConfigurationError as exc:
        console.print(f"[red]Configuration Error: {exc}[/red]")
        raise SystemExit(1) from exc

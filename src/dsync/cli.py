"""
Command-line interface for dsync.
"""

import asyncio
import sys
from functools import wraps
from pathlib import Path
from typing import Dict, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .client import SchemaSync
from .config import DSyncConfig
from .database.connection import ConnectionConfig
from .database.health import DatabaseHealthChecker
from .exceptions import ConfigurationError, DSyncError
from .logging_setup import setup_logging
from .schema.reconciler import ReconciliationResult, ReconciliationStatus
from .schema.specs import ColumnSpec, KeySpec, TableSpec


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DSyncError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


def _load_config(ctx: click.Context, path: str) -> DSyncConfig:
    config = DSyncConfig.from_yaml(path)
    setup_logging(config.logging, level="DEBUG" if ctx.obj.get("debug") else None)
    return config


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """dsync: declarative MySQL schema synchronization."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="dsync.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Write an example dsync configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    _create_default_config().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit the connection settings and table declarations")
    console.print(f"2. Run: dsync validate-config -c {output}")
    console.print(f"3. Run: dsync sync -c {output} --dry-run")


@main.command()
@config_option
@click.pass_context
@handle_errors
def validate_config(ctx, config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    try:
        dsync_config = _load_config(ctx, config)
        dsync_config.validate_config()
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        sys.exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    _display_config_summary(dsync_config)


@main.command()
@config_option
@click.pass_context
@handle_errors
def wait(ctx, config: str):
    """Block until the database accepts connections."""
    dsync_config = _load_config(ctx, config)
    console.print(
        f"[blue]Waiting for {dsync_config.database.host}:{dsync_config.database.port}...[/blue]"
    )

    async def run_wait():
        async with SchemaSync(dsync_config) as schema_sync:
            await schema_sync.wait_for_connection()

    asyncio.run(run_wait())
    console.print("[green]✓[/green] Database is ready")


@main.command()
@config_option
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show the DDL that would run without executing it",
)
@click.option(
    "--table",
    "-t",
    "tables",
    multiple=True,
    help="Only reconcile this table (repeatable)",
)
@click.pass_context
@handle_errors
def sync(ctx, config: str, dry_run: bool, tables: Tuple[str, ...]):
    """Create missing tables and add missing columns."""
    dsync_config = _load_config(ctx, config)
    if dry_run:
        dsync_config = dsync_config.model_copy(update={"dry_run": True})
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    specs = [dsync_config.get_table(name) for name in tables] or dsync_config.tables
    if not specs:
        console.print("[yellow]No tables configured[/yellow]")
        return

    async def run_sync():
        async with SchemaSync(dsync_config) as schema_sync:
            return await schema_sync.sync(specs)

    results = asyncio.run(run_sync())
    _display_results(results)

    if any(r.status == ReconciliationStatus.FAILED for r in results.values()):
        sys.exit(1)


@main.command()
@config_option
@click.pass_context
@handle_errors
def status(ctx, config: str):
    """Show database health and schema drift without changing anything."""
    dsync_config = _load_config(ctx, config)

    async def run_status_check():
        async with SchemaSync(dsync_config) as schema_sync:
            health = await DatabaseHealthChecker(schema_sync.pool).check_all()
            drift = {}
            for spec in dsync_config.tables:
                if not await schema_sync.table_exists(spec.name):
                    drift[spec.name] = None
                else:
                    drift[spec.name] = await schema_sync.reconciler.missing_columns(spec)
            return health, drift

    health, drift = asyncio.run(run_status_check())

    health_table = Table(title="Database Health")
    health_table.add_column("Check", style="cyan")
    health_table.add_column("Status")
    health_table.add_column("Message")
    for result in health.values():
        color = "green" if result.is_healthy else "red"
        health_table.add_row(
            result.name, f"[{color}]{result.status.value}[/{color}]", result.message
        )
    console.print(health_table)

    drift_table = Table(title="Schema Status")
    drift_table.add_column("Table", style="cyan")
    drift_table.add_column("State")
    drift_table.add_column("Missing columns")
    for name, missing in drift.items():
        if missing is None:
            drift_table.add_row(name, "[yellow]absent[/yellow]", "-")
        elif missing:
            drift_table.add_row(
                name, "[yellow]drifted[/yellow]", ", ".join(c.name for c in missing)
            )
        else:
            drift_table.add_row(name, "[green]up to date[/green]", "-")
    console.print(drift_table)


@main.command()
@config_option
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    required=True,
    help="File to write the dump to",
)
@click.pass_context
@handle_errors
def export(ctx, config: str, output: str):
    """Dump the database with mysqldump."""
    dsync_config = _load_config(ctx, config)
    console.print(f"[blue]Exporting {dsync_config.database.database} to {output}[/blue]")

    schema_sync = SchemaSync(dsync_config)
    path = asyncio.run(schema_sync.export_database(output))
    console.print(f"[green]✓[/green] Export written to {path}")


def _display_results(results: Dict[str, ReconciliationResult]) -> None:
    table = Table(title="Schema Reconciliation")
    table.add_column("Table", style="cyan")
    table.add_column("Status")
    table.add_column("Action")
    table.add_column("Statements", justify="right")
    table.add_column("Details")

    colors = {
        ReconciliationStatus.SUCCESS: "green",
        ReconciliationStatus.PARTIAL: "yellow",
        ReconciliationStatus.FAILED: "red",
    }
    for name, result in results.items():
        color = colors[result.status]
        if result.errors:
            details = "; ".join(result.errors)
        elif result.added_columns:
            details = f"added {', '.join(result.added_columns)}"
        else:
            details = ""
        table.add_row(
            name,
            f"[{color}]{result.status.value}[/{color}]",
            result.action.value,
            str(len(result.statements)),
            details,
        )
    console.print(table)

    for result in results.values():
        if result.dry_run:
            for statement in result.statements:
                console.print(f"  {statement};")


def _create_default_config() -> DSyncConfig:
    return DSyncConfig(
        database=ConnectionConfig(
            host="${MYSQL_HOST}",
            user="${MYSQL_USER}",
            password="${MYSQL_PASSWORD}",
            database="${MYSQL_DATABASE}",
        ),
        tables=[
            TableSpec(
                name="users",
                columns=[
                    ColumnSpec(name="id", type="INT NOT NULL"),
                    ColumnSpec(name="name", type="VARCHAR(255) NOT NULL"),
                    ColumnSpec(name="active", type="TINYINT(1) NOT NULL DEFAULT 1"),
                ],
                keys=[KeySpec(name="PRIMARY KEY", type="(id)")],
                auto_increment="id INT NOT NULL AUTO_INCREMENT",
            )
        ],
    )


def _display_config_summary(config: DSyncConfig) -> None:
    db = config.database
    console.print(f"\nDatabase: [yellow]{db.user}@{db.host}:{db.port}/{db.database}[/yellow]")
    console.print(
        f"Pool: limit={db.connection_limit}, queue_limit={db.queue_limit}, "
        f"wait_for_connections={db.wait_for_connections}"
    )

    table = Table(title="Declared Tables")
    table.add_column("Table", style="cyan")
    table.add_column("Columns", justify="right")
    table.add_column("Keys", justify="right")
    table.add_column("Auto increment")
    for spec in config.tables:
        table.add_row(
            spec.name,
            str(len(spec.columns)),
            str(len(spec.keys or ())),
            spec.auto_increment or "-",
        )
    console.print(table)


if __name__ == "__main__":
    main()

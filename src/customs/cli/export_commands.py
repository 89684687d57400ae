"""CLI commands for customs."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from customs.config import load_config
from customs.constants import DEFAULT_DATABASE_URL, OutputKind
from customs.exceptions import CustomsError
from customs.transforms import compile_transforms

# stdout may carry CSV, so everything for humans goes to stderr
console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def export_command(
    database_url: Annotated[
        str,
        typer.Option("--database-url", "-d", envvar="DATABASE_URL", help="Database URL"),
    ] = DEFAULT_DATABASE_URL,
    configfile: Annotated[
        Path,
        typer.Option("--configfile", "-c", envvar="CONFIGFILE", help="YAML or JSON config file"),
    ] = Path("config.yaml"),
    output: Annotated[
        OutputKind,
        typer.Option("--output", "-o", envvar="OUTPUT", help="Write one file per table or stream to stdout"),
    ] = OutputKind.DIR,
    target_directory: Annotated[
        Path,
        typer.Option("--target-directory", "-t", envvar="TARGET_DIRECTORY", help="Directory for dir output"),
    ] = Path("trunk"),
    compress: Annotated[
        bool,
        typer.Option("--compress", envvar="COMPRESS", help="Gzip output files"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", envvar="VERBOSE", help="Log composed SQL and debug detail"),
    ] = False,
) -> None:
    """
    Export every configured table.

    Tables are read in configuration order over one connection, restricted
    by their filters, trace filters and related-table constraints, and
    written with configured columns pseudonymized. The same data and config
    always produce byte-identical output.
    """
    from customs.db import get_connection, get_engine
    from customs.export import Exporter, Output

    _configure_logging(verbose)

    try:
        config = load_config(configfile)
        engine = get_engine(database_url)
        sink = Output.create(output, target_directory, compress)
        with get_connection(engine) as conn:
            stats = Exporter(conn, config, sink, sink.progress(console)).run()
    except CustomsError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(code=1)
    except SQLAlchemyError as e:
        console.print(f"[bold red]Database error:[/bold red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(code=1)
    except OSError as e:
        console.print(f"[bold red]Output error:[/bold red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(code=1)

    table = Table(title="Export Summary")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="magenta", justify="right")
    table.add_column("Status", style="green")
    for result in stats.tables:
        status = "skipped (empty)" if result.skipped else str(result.path or "stdout")
        table.add_row(result.qualified_name, str(result.rows), status)
    console.print(table)
    console.print(
        f"[green]✓[/green] {stats.tables_exported} tables, "
        f"{stats.rows_written} rows written"
    )


def check_command(
    configfile: Annotated[
        Path,
        typer.Option("--configfile", "-c", envvar="CONFIGFILE", help="YAML or JSON config file"),
    ] = Path("config.yaml"),
) -> None:
    """
    Validate a config file and its transform parameters without connecting
    to a database.
    """
    try:
        config = load_config(configfile)
        compile_transforms(config)
    except CustomsError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] {configfile} is valid", soft_wrap=True)
    if config.trace_filters:
        names = ", ".join(tf.name for tf in config.trace_filters)
        console.print(f"Global trace filters: {names}")

    table = Table(title="Configured Tables")
    table.add_column("Table", style="cyan")
    table.add_column("Filter", style="magenta")
    table.add_column("Related", style="blue")
    table.add_column("Transforms", justify="right")
    for db_name, database in config.databases.items():
        for table_name, table_config in database.tables.items():
            related = table_config.related_only.table if table_config.related_only else ""
            table.add_row(
                f"{db_name}.{table_name}",
                table_config.filter or "",
                related,
                str(len(table_config.transforms)),
            )
    console.print(table)

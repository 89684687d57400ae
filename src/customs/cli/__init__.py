"""Console script for customs."""

from __future__ import annotations

import typer

app = typer.Typer(
    name="customs",
    help="Export database tables to CSV with trace filters and pseudonymized columns",
    no_args_is_help=True,
)

# Import commands
from customs.cli.export_commands import check_command, export_command

# Register commands
app.command(name="export")(export_command)
app.command(name="check")(check_command)


if __name__ == "__main__":
    app()

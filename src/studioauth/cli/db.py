"""Database migration commands (thin wrappers around Alembic)."""

import subprocess
import sys

import typer
from rich.console import Console

console = Console()
app = typer.Typer(help="Database management commands")


def _alembic(*args: str, success: str | None = None, failure: str | None = None) -> None:
    result = subprocess.run(
        [sys.executable, "-m", "alembic", *args],
        check=False, capture_output=False,
    )
    if result.returncode != 0:
        if failure:
            console.print(f"[red]{failure}[/red]")
        raise typer.Exit(result.returncode)
    if success:
        console.print(f"[green]{success}[/green]")


@app.command("migrate")
def migrate(
    revision: str = typer.Argument("head", help="Target revision (default: head)"),
):
    """Upgrade the schema (users, profiles, verification tokens)."""
    console.print(f"[dim]Running migrations to {revision}...[/dim]")
    _alembic("upgrade", revision, success="Migrations complete!", failure="Migration failed!")


@app.command("rollback")
def rollback(
    revision: str = typer.Argument("-1", help="Target revision (default: -1 for one step back)"),
):
    """Rollback database migrations."""
    console.print(f"[dim]Rolling back to {revision}...[/dim]")
    _alembic("downgrade", revision, success="Rollback complete!", failure="Rollback failed!")


@app.command("current")
def current():
    """Show current database revision."""
    _alembic("current")


@app.command("history")
def history():
    """Show migration history."""
    _alembic("history", "--verbose")


@app.command("create-migration")
def create_migration(
    message: str = typer.Argument(..., help="Migration message"),
    autogenerate: bool = typer.Option(True, "--autogenerate/--no-autogenerate", help="Auto-detect model changes"),
):
    """Create a new migration."""
    args = ["revision", "-m", message]
    if autogenerate:
        args.append("--autogenerate")
    _alembic(*args, success="Migration created!", failure="Failed to create migration!")

"""Database administration commands."""

import typer

from contribution_tracker.db import create_tables

from .common import console, run_async_command

app = typer.Typer(help="Database administration")


@app.command("init")
def init_db() -> None:
    """Create all tables in the configured database.

    Uses the ORM metadata directly; run `alembic upgrade head` instead
    for databases managed through migrations.
    """
    run_async_command(create_tables(), error_prefix="Database init failed")
    console.print("[green]Database tables created[/green]")

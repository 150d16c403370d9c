"""Entry point for the ``contribtrack`` command."""

from typing import Annotated

import typer

from contribution_tracker import __version__
from contribution_tracker.cli import db as db_cmd
from contribution_tracker.cli import roster as roster_cmd
from contribution_tracker.cli import sync as sync_cmd
from contribution_tracker.cli.common import console
from contribution_tracker.config import get_settings
from contribution_tracker.logging import setup_logging

app = typer.Typer(
    name="contribtrack",
    help="Track student open-source contributions synced from GitHub.",
    add_completion=False,
    no_args_is_help=True,
)
app.add_typer(sync_cmd.app, name="sync")
app.add_typer(roster_cmd.app, name="roster")
app.add_typer(db_cmd.app, name="db")


def _show_version(value: bool) -> None:
    if value:
        console.print(f"contribtrack version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging.")
    ] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Only log warnings and errors.")
    ] = False,
    log_file: Annotated[
        str | None,
        typer.Option("--log-file", help="Also write a rotating debug log to this path."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=_show_version,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Sync student commits, pull requests and issues into the local store."""
    settings = get_settings()
    file_config = settings.logging
    if log_file:
        file_config = file_config.model_copy(update={"log_file": log_file})

    setup_logging(settings.log_level, verbose=verbose, quiet=quiet, file_config=file_config)


if __name__ == "__main__":
    app()

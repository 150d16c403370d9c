"""Sync commands for Contribution Tracker.

`sync all` is the scheduled entry point: it exits with code 1 when any
repository failed so cron wrappers can alert on it.
"""

import typer

from contribution_tracker.db.models import SyncStatus
from contribution_tracker.github.sync import (
    BatchSyncResult,
    OutputFormat,
    RepoSyncResult,
    sync_context,
)

from .common import (
    OutputFormatOption,
    RepositoryIdArgument,
    StudentIdArgument,
    console,
    print_json,
    run_async_command,
)

app = typer.Typer(help="Sync contributions from GitHub")

_STATUS_STYLES = {
    SyncStatus.SUCCESS: "[green]success[/green]",
    SyncStatus.PARTIAL: "[yellow]partial[/yellow]",
    SyncStatus.ERROR: "[red]error[/red]",
}


def _print_repo_result(result: RepoSyncResult) -> None:
    """Print one repository result as text."""
    name = result.repository or f"repository {result.repository_id}"
    status = _STATUS_STYLES[result.status]
    console.print(
        f"[bold]{name}[/bold] ({result.username or '?'}): {status}, "
        f"{result.contributions_count} contributions"
    )
    for phase in result.phases:
        line = f"  {phase.phase.value}: {phase.contributions_count}"
        if phase.created or phase.updated:
            line += f" (+{phase.created} ~{phase.updated})"
        if phase.retrieval is not None:
            line += f" [dim]via {phase.retrieval.value}[/dim]"
        if phase.possibly_truncated:
            line += " [yellow](possibly truncated)[/yellow]"
        if phase.skipped:
            line += f" [yellow]({phase.skipped} skipped)[/yellow]"
        if phase.error:
            line += f" [red]{phase.error}[/red]"
        console.print(line)
    if not result.phases and result.error:
        console.print(f"  [red]{result.error}[/red]")


def _print_batch_result(batch: BatchSyncResult) -> None:
    """Print a batch summary followed by per-repository details."""
    if batch.error:
        console.print(f"[red]Error:[/red] {batch.error}")
        return

    console.print("[bold]Sync Complete[/bold]")
    console.print()
    console.print(f"  [bold]Repositories:[/bold]   {batch.total}")
    console.print(f"    [green]Succeeded:[/green]    {batch.succeeded}")
    if batch.failed > 0:
        console.print(f"    [red]Failed:[/red]       {batch.failed}")
    console.print(f"  [bold]Contributions:[/bold]  {batch.contributions_count}")

    if batch.results:
        console.print()
        console.print("[bold]Per-Repository Details:[/bold]")
        for result in batch.results:
            _print_repo_result(result)


@app.command("repo")
def sync_repository(
    repository_id: RepositoryIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync one tracked repository for its owning student.

    Examples:
        contribtrack sync repo 3
        contribtrack sync repo 3 --format json
    """

    async def _sync() -> RepoSyncResult:
        async with sync_context() as coordinator:
            return await coordinator.sync_repository_by_id(repository_id)

    result = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        print_json(result.to_dict())
    else:
        _print_repo_result(result)

    if not result.success:
        raise typer.Exit(1)


@app.command("student")
def sync_student(
    student_id: StudentIdArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync every repository relevant to one student.

    Covers the student's own repositories and repositories where the
    student already has contributions.

    Examples:
        contribtrack sync student 7
    """

    async def _sync() -> BatchSyncResult:
        async with sync_context() as coordinator:
            return await coordinator.sync_for_student(student_id)

    batch = run_async_command(_sync(), error_prefix="Sync failed")
    _finish_batch(batch, output_format)


@app.command("all")
def sync_all_repositories(
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync every tracked repository.

    Intended for scheduled runs. Exits with code 1 if any repository failed.

    Examples:
        contribtrack sync all
        contribtrack --quiet sync all --format json
    """

    async def _sync() -> BatchSyncResult:
        async with sync_context() as coordinator:
            return await coordinator.sync_all()

    batch = run_async_command(_sync(), error_prefix="Sync failed")
    _finish_batch(batch, output_format)


def _finish_batch(batch: BatchSyncResult, output_format: OutputFormat) -> None:
    if output_format == OutputFormat.JSON:
        print_json(batch.to_dict())
    else:
        _print_batch_result(batch)

    if not batch.all_succeeded:
        raise typer.Exit(1)

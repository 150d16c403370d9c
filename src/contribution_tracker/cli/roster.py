"""Roster commands: register students and their tracked repositories."""

from typing import Annotated, Any

import typer
from pydantic import ValidationError

from contribution_tracker.db import RepositoryRepository, StudentRepository, get_session
from contribution_tracker.github.sync import OutputFormat
from contribution_tracker.schemas import RepositoryCreate, RepositoryRead, StudentCreate

from .common import (
    OutputFormatOption,
    RepoArgument,
    StudentIdArgument,
    console,
    fail,
    print_json,
    run_async_command,
)

app = typer.Typer(help="Manage students and tracked repositories")


@app.command("add-student")
def add_student(
    username: Annotated[str, typer.Argument(help="GitHub username")],
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Student's display name"),
    ] = None,
    email: Annotated[
        str | None,
        typer.Option("--email", "-e", help="Student's email"),
    ] = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Register a student by GitHub username.

    Examples:
        contribtrack roster add-student alice --name "Alice Liddell"
    """
    try:
        data = StudentCreate(github_username=username, student_name=name, email=email)
    except ValidationError as e:
        fail(e)

    async def _add() -> dict[str, Any]:
        async with get_session() as session:
            students = StudentRepository(session)
            existing = await students.get_by_username(data.github_username)
            if existing is not None:
                return {
                    "id": existing.id,
                    "github_username": existing.github_username,
                    "created": False,
                }
            student = await students.create(
                data.github_username,
                student_name=data.student_name,
                email=data.email,
            )
            return {
                "id": student.id,
                "github_username": student.github_username,
                "created": True,
            }

    result = run_async_command(_add(), error_prefix="Failed to add student")

    if output_format == OutputFormat.JSON:
        print_json(result)
    elif result["created"]:
        console.print(
            f"[green]Added[/green] student {result['github_username']} (id {result['id']})"
        )
    else:
        console.print(
            f"[dim]Student {result['github_username']} already exists (id {result['id']})[/dim]"
        )


@app.command("add-repo")
def add_repo(
    student_id: StudentIdArgument,
    repo: RepoArgument,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Track a repository for a student.

    Examples:
        contribtrack roster add-repo 1 acme/widgets
        contribtrack roster add-repo 1 https://github.com/acme/widgets.git
    """
    try:
        data = RepositoryCreate.from_reference(student_id, repo)
    except ValidationError as e:
        fail(e)
    except ValueError as e:
        fail(str(e))

    async def _add() -> dict[str, Any]:
        async with get_session() as session:
            student = await StudentRepository(session).get_by_id(data.student_id)
            if student is None:
                fail(f"Student {data.student_id} not found")

            repository, created = await RepositoryRepository(session).get_or_create(
                data.student_id, data.owner, data.name
            )
            return RepositoryRead.from_orm(repository).to_payload(created=created)

    result = run_async_command(_add(), error_prefix="Failed to add repository")

    if output_format == OutputFormat.JSON:
        print_json(result)
    elif result["created"]:
        console.print(
            f"[green]Added[/green] {result['full_name']} for student "
            f"{result['student_id']} (id {result['id']})"
        )
    else:
        console.print(f"[dim]{result['full_name']} already tracked (id {result['id']})[/dim]")

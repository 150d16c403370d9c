"""Shared CLI plumbing: console, option types, async runner and error exits."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from typing import Annotated, Any, NoReturn, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from contribution_tracker.github.sync.enums import OutputFormat

console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Run a command's coroutine, turning unexpected errors into exit code 1.

    ``typer.Exit`` raised inside the coroutine (for example by `fail`)
    passes through untouched.

    Example:
        result = run_async_command(_sync(), error_prefix="Sync failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def fail(message: str | ValidationError) -> NoReturn:
    """Print an error line and exit with code 1.

    Validation errors are reduced to their messages, without pydantic's
    location and URL noise.
    """
    if isinstance(message, ValidationError):
        message = "; ".join(str(item["msg"]) for item in message.errors())
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def print_json(data: dict[str, Any]) -> None:
    console.print_json(json.dumps(data))


# Typer needs its Option/Argument objects as defaults (ruff B008), so the
# shared parameters are declared once here as Annotated aliases.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Output format: text or json"),
]

RepoArgument = Annotated[
    str,
    typer.Argument(help="Repository as owner/name or GitHub URL (e.g., acme/widgets)"),
]

RepositoryIdArgument = Annotated[int, typer.Argument(help="Tracked repository ID")]

StudentIdArgument = Annotated[int, typer.Argument(help="Student ID")]

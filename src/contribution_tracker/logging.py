"""Logging setup for contribution syncs, built on loguru.

Console lines carry the repository and student a sync is working on, so
interleaved output from `sync all` stays readable. Library loggers
(SQLAlchemy, aiosqlite, httpx/githubkit) are routed through loguru and
kept quiet unless debug output is requested.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

    from contribution_tracker.config import LoggingConfig

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# (level when debugging, level otherwise)
_LIBRARY_LEVELS: dict[str, tuple[int, int]] = {
    "sqlalchemy.engine": (logging.INFO, logging.WARNING),
    "aiosqlite": (logging.INFO, logging.WARNING),
    "httpx": (logging.DEBUG, logging.WARNING),
    "httpcore": (logging.INFO, logging.WARNING),
    "githubkit": (logging.DEBUG, logging.WARNING),
}

_configured = False


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_format(record: Record) -> str:
    """Build the console line, appending sync context when bound."""
    extra = record["extra"]
    source = "{extra[name]}" if "name" in extra else "{name}"
    context = ""
    if "repo" in extra:
        context = " <magenta>[{extra[repo]}"
        context += " @{extra[student]}]</magenta>" if "student" in extra else "]</magenta>"
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{source}</cyan>{context} - <level>{{message}}</level>\n{{exception}}"
    )


def resolve_level(level: LogLevel, *, verbose: bool = False, quiet: bool = False) -> LogLevel:
    """Apply CLI overrides to the configured level. Verbose beats quiet."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    file_config: LoggingConfig | None = None,
) -> Logger:
    """Configure loguru sinks and stdlib interception.

    Args:
        level: Base level from settings
        verbose: Force DEBUG
        quiet: Force WARNING (ignored when verbose is set)
        file_config: Adds a rotating file sink when it names a log file

    Returns:
        The configured loguru logger
    """
    global _configured

    effective = resolve_level(level, verbose=verbose, quiet=quiet)

    logger.remove()
    logger.add(sys.stderr, level=effective, format=_console_format, colorize=True)

    if file_config is not None and file_config.log_file:
        # The file always records DEBUG so a quiet run can still be diagnosed
        logger.add(
            Path(file_config.log_file),
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {extra} | {message}",
            rotation=file_config.rotation,
            retention=file_config.retention,
            compression="gz",
            serialize=file_config.serialize,
        )

    _route_library_loggers(debug=effective in ("TRACE", "DEBUG"))

    _configured = True
    return logger


def _route_library_loggers(*, debug: bool) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, (debug_level, normal_level) in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(debug_level if debug else normal_level)


def get_logger(name: str) -> Logger:
    """Return a logger tagged with a module name (usually ``__name__``)."""
    return logger.bind(name=name)


def bind_student(owner: str, repo: str, username: str) -> Logger:
    """Return a sync logger tagged with the repository and the student's username."""
    return logger.bind(name="sync", repo=f"{owner}/{repo}", student=username)


class LogContext:
    """Bind context to every log call made inside a ``with`` block.

    Uses ``logger.contextualize`` so the values also reach loggers that
    were bound before the block was entered.
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._manager: Any = None

    def __enter__(self) -> Logger:
        self._manager = logger.contextualize(**self._context)
        self._manager.__enter__()
        return logger

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._manager is not None:
            self._manager.__exit__(exc_type, exc_val, exc_tb)
            self._manager = None


def is_configured() -> bool:
    return _configured


def reset_logging() -> None:
    """Remove all sinks and clear the configured flag (used by tests)."""
    global _configured
    logger.remove()
    _configured = False

"""Wiring for running syncs outside of tests.

Builds the GitHub client, a database session whose commit boundaries
belong to the orchestrator, and the coordinator on top of them.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from contribution_tracker.config import get_settings
from contribution_tracker.db.engine import get_session
from contribution_tracker.github.client import GitHubClient

from .coordinator import BatchCoordinator
from .orchestrator import SyncOrchestrator


@asynccontextmanager
async def sync_context(token: str | None = None) -> AsyncIterator[BatchCoordinator]:
    """Provide a ready-to-use BatchCoordinator.

    Usage:
        async with sync_context() as coordinator:
            result = await coordinator.sync_repository_by_id(1)

    Args:
        token: GitHub token override (defaults to GITHUB_TOKEN)

    Yields:
        BatchCoordinator bound to a fresh session and client
    """
    settings = get_settings()
    async with GitHubClient(token, config=settings.github) as client:
        async with get_session(auto_commit=False) as session:
            orchestrator = SyncOrchestrator(session, client, settings.sync)
            yield BatchCoordinator(session, orchestrator)

"""Read-back queries for asserting on what a test stored.

The sync engine only writes contributions and sync logs, so lookups by
key, per-type counts and log history live here rather than on the
repository classes.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.models import Contribution, ContributionType, SyncLog


async def contribution_by_key(
    session: AsyncSession,
    repository_id: int,
    contribution_type: ContributionType,
    external_id: str,
) -> Contribution | None:
    stmt = select(Contribution).where(
        Contribution.repository_id == repository_id,
        Contribution.type == contribution_type.value,
        Contribution.external_id == external_id,
    )
    result = await session.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def contributions_for(
    session: AsyncSession,
    repository_id: int,
    contribution_type: ContributionType | None = None,
) -> list[Contribution]:
    """Stored contributions ordered by type and external id, reloaded from the database."""
    stmt = select(Contribution).where(Contribution.repository_id == repository_id)
    if contribution_type is not None:
        stmt = stmt.where(Contribution.type == contribution_type.value)
    stmt = stmt.order_by(Contribution.type, Contribution.external_id)
    result = await session.execute(stmt.execution_options(populate_existing=True))
    return list(result.scalars().all())


async def contribution_counts(
    session: AsyncSession, repository_id: int
) -> dict[ContributionType, int]:
    stmt = (
        select(Contribution.type, func.count(Contribution.id))
        .where(Contribution.repository_id == repository_id)
        .group_by(Contribution.type)
    )
    result = await session.execute(stmt)
    counts = {contribution_type: 0 for contribution_type in ContributionType}
    for type_value, count in result.all():
        counts[ContributionType(type_value)] = count
    return counts


async def sync_logs_for(session: AsyncSession, repository_id: int) -> list[SyncLog]:
    """Sync logs of a repository, oldest first."""
    stmt = (
        select(SyncLog)
        .where(SyncLog.repository_id == repository_id)
        .order_by(SyncLog.id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def latest_sync_log(session: AsyncSession, repository_id: int) -> SyncLog | None:
    logs = await sync_logs_for(session, repository_id)
    return logs[-1] if logs else None

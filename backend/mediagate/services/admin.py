"""Administrative queries across users and tasks."""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.models.enums import TaskKind
from mediagate.models.task import GenerationTask
from mediagate.models.user import User


async def task_counts(session: AsyncSession, user_ids: list[str]) -> dict[str, dict[str, int]]:
    """Per-user task counts keyed by task kind."""

    counts: dict[str, dict[str, int]] = {user_id: {kind.value: 0 for kind in TaskKind} for user_id in user_ids}
    if not user_ids:
        return counts
    result = await session.execute(
        select(GenerationTask.user_id, GenerationTask.kind, func.count(GenerationTask.id))
        .where(GenerationTask.user_id.in_(user_ids))
        .group_by(GenerationTask.user_id, GenerationTask.kind)
    )
    for user_id, kind, count in result.all():
        counts[user_id][kind] = count
    return counts


async def _grouped(session: AsyncSession, column, kind: TaskKind) -> dict[str, int]:
    result = await session.execute(
        select(column, func.count(GenerationTask.id)).where(GenerationTask.kind == kind.value).group_by(column)
    )
    return {key: count for key, count in result.all()}


async def system_stats(session: AsyncSession) -> dict:
    total_users = await session.scalar(select(func.count(User.id)))
    kind_totals = await session.execute(
        select(GenerationTask.kind, func.count(GenerationTask.id)).group_by(GenerationTask.kind)
    )
    totals = {kind: count for kind, count in kind_totals.all()}
    return {
        "total_users": total_users or 0,
        "total_video_tasks": totals.get(TaskKind.VIDEO.value, 0),
        "total_image_tasks": totals.get(TaskKind.IMAGE.value, 0),
        "video_by_provider": await _grouped(session, GenerationTask.provider, TaskKind.VIDEO),
        "video_by_status": await _grouped(session, GenerationTask.status, TaskKind.VIDEO),
        "image_by_status": await _grouped(session, GenerationTask.status, TaskKind.IMAGE),
    }

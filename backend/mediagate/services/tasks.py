"""Task ledger: lifecycle records for generation jobs keyed by external task id."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.errors import NotFoundError
from mediagate.models.enums import Provider, TaskKind, TaskStatus
from mediagate.models.task import GenerationTask
from mediagate.models.user import utcnow
from mediagate.services.task_status import (
    extract_error,
    extract_progress,
    extract_video_url,
    initial_status,
    map_provider_status,
)

logger = logging.getLogger(__name__)

PROCESSING_DEFAULT_PROGRESS = 50


async def create_task(
    session: AsyncSession,
    *,
    user_id: str,
    external_id: str,
    provider: Provider,
    model: str,
    prompt: str,
    params: dict[str, Any] | None = None,
    response: Mapping[str, Any] | None = None,
) -> GenerationTask:
    status = initial_status(provider, response)
    task = GenerationTask(
        external_id=external_id,
        user_id=user_id,
        provider=provider.value,
        kind=provider.kind.value,
        model=model,
        prompt=prompt,
        params=params,
        status=status.value,
        progress=0,
        last_response=dict(response) if response else None,
    )
    if response:
        _apply_status(task, status, response)
    session.add(task)
    await session.flush()
    logger.info("Recorded %s task %s for user %s (%s)", provider.value, external_id, user_id, status.value)
    return task


async def get_task(session: AsyncSession, external_id: str) -> GenerationTask | None:
    result = await session.execute(select(GenerationTask).where(GenerationTask.external_id == external_id))
    return result.scalar_one_or_none()


async def get_user_task(session: AsyncSession, user_id: str, external_id: str) -> GenerationTask:
    result = await session.execute(
        select(GenerationTask).where(GenerationTask.external_id == external_id, GenerationTask.user_id == user_id)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def update_by_external_id(session: AsyncSession, external_id: str, **fields: Any) -> GenerationTask:
    """Overwrite the given columns, last write wins."""

    task = await get_task(session, external_id)
    if task is None:
        raise NotFoundError("Task not found")
    for name, value in fields.items():
        if not hasattr(GenerationTask, name):
            raise AttributeError(f"GenerationTask has no column {name}")
        setattr(task, name, value)
    task.updated_at = utcnow()
    await session.flush()
    return task


def _apply_status(task: GenerationTask, status: TaskStatus, response: Mapping[str, Any]) -> None:
    task.status = status.value
    if status is TaskStatus.COMPLETED:
        task.progress = 100
        url = extract_video_url(response)
        if url:
            task.asset_urls = [url]
        thumbnail = response.get("thumbnail_url")
        if isinstance(thumbnail, str) and thumbnail:
            task.thumbnail_url = thumbnail
    elif status is TaskStatus.PROCESSING:
        task.progress = extract_progress(response, PROCESSING_DEFAULT_PROGRESS)
    elif status is TaskStatus.FAILED:
        task.error = extract_error(response)
    elif status is TaskStatus.QUEUED:
        task.progress = extract_progress(response, 0)


def apply_query_result(task: GenerationTask, provider: Provider, response: Mapping[str, Any]) -> bool:
    """Fold a provider query response into ``task``. Returns False when nothing changed.

    Terminal tasks are left as they are. A processing task never falls back to
    queued.
    """
    current = TaskStatus(task.status)
    if current.is_terminal:
        return False
    status = map_provider_status(provider, response.get("status"))
    if status is TaskStatus.UNKNOWN:
        logger.warning("Task %s: unmapped %s status %r", task.external_id, provider.value, response.get("status"))
    if status is TaskStatus.QUEUED and current is TaskStatus.PROCESSING:
        status = current
    task.last_response = dict(response)
    _apply_status(task, status, response)
    task.updated_at = utcnow()
    return True


async def reconcile(
    session: AsyncSession,
    user_id: str,
    external_id: str,
    provider: Provider,
    response: Mapping[str, Any],
) -> GenerationTask | None:
    """Apply a query response to the caller's own task, if the ledger has one."""

    result = await session.execute(
        select(GenerationTask).where(GenerationTask.external_id == external_id, GenerationTask.user_id == user_id)
    )
    task = result.scalar_one_or_none()
    if task is None:
        logger.debug("No ledger record for %s task %s", provider.value, external_id)
        return None
    if apply_query_result(task, provider, response):
        await session.flush()
        logger.info("Task %s is now %s (%s%%)", external_id, task.status, task.progress)
    return task


async def list_tasks(
    session: AsyncSession,
    user_id: str,
    *,
    offset: int,
    limit: int,
    kind: TaskKind | None = None,
    provider: Provider | None = None,
    status: TaskStatus | None = None,
) -> tuple[list[GenerationTask], int]:
    query = select(GenerationTask).where(GenerationTask.user_id == user_id)
    if kind:
        query = query.where(GenerationTask.kind == kind.value)
    if provider:
        query = query.where(GenerationTask.provider == provider.value)
    if status:
        query = query.where(GenerationTask.status == status.value)
    total = await session.scalar(select(func.count()).select_from(query.subquery()))
    result = await session.execute(
        query.order_by(GenerationTask.created_at.desc(), GenerationTask.id.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def delete_task(session: AsyncSession, user_id: str, external_id: str) -> bool:
    result = await session.execute(
        delete(GenerationTask).where(GenerationTask.user_id == user_id, GenerationTask.external_id == external_id)
    )
    return result.rowcount > 0


async def delete_completed(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        delete(GenerationTask).where(
            GenerationTask.user_id == user_id,
            GenerationTask.status == TaskStatus.COMPLETED.value,
        )
    )
    logger.info("Deleted %s completed task(s) for user %s", result.rowcount, user_id)
    return result.rowcount

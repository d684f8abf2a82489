"""Task ledger endpoints for the caller's own tasks."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import PageParams, get_current_principal, get_db, page_params
from mediagate.core.errors import NotFoundError
from mediagate.models.enums import Provider, TaskKind, TaskStatus
from mediagate.schemas.common import DeletedCount, Page
from mediagate.schemas.task import TaskRead
from mediagate.services import tasks as ledger
from mediagate.services.auth import Principal

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=Page[TaskRead])
async def list_tasks(
    provider: Provider | None = None,
    status: TaskStatus | None = None,
    kind: TaskKind | None = None,
    paging: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Page[TaskRead]:
    tasks, total = await ledger.list_tasks(
        session,
        principal.user_id,
        offset=paging.offset,
        limit=paging.limit,
        kind=kind,
        provider=provider,
        status=status,
    )
    return Page[TaskRead](
        items=[TaskRead.model_validate(task) for task in tasks],
        total=total,
        page=paging.page,
        limit=paging.limit,
    )


@router.delete("/completed/clear", response_model=DeletedCount)
async def clear_completed(
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DeletedCount:
    deleted = await ledger.delete_completed(session, principal.user_id)
    await session.commit()
    return DeletedCount(deleted=deleted)


@router.get("/{external_id}", response_model=TaskRead)
async def get_task(
    external_id: str,
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> TaskRead:
    task = await ledger.get_user_task(session, principal.user_id, external_id)
    return TaskRead.model_validate(task)


@router.delete("/{external_id}", response_model=DeletedCount)
async def delete_task(
    external_id: str,
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DeletedCount:
    if not await ledger.delete_task(session, principal.user_id, external_id):
        raise NotFoundError("Task not found")
    await session.commit()
    return DeletedCount(deleted=1)

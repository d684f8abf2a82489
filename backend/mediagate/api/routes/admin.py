"""Administrative endpoints. Every route requires the admin role."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import PageParams, get_db, get_secret_manager, page_params, require_admin
from mediagate.core.errors import NotFoundError, ValidationError
from mediagate.core.security import SecretManager
from mediagate.models.enums import Provider, Role, TaskKind, TaskStatus
from mediagate.models.user import User
from mediagate.schemas.admin import AdminUserDetail, AdminUserRead, SystemStats
from mediagate.schemas.common import Message, Page
from mediagate.schemas.task import TaskRead
from mediagate.schemas.user import PasswordReset, UserRead
from mediagate.services import admin as admin_service
from mediagate.services import tasks as ledger
from mediagate.services import users as user_service
from mediagate.services.auth import Principal
from mediagate.services.user_config import get_display_config

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _admin_user(user: User, counts: dict[str, int]) -> AdminUserRead:
    return AdminUserRead(
        **UserRead.model_validate(user).model_dump(),
        video_task_count=counts.get(TaskKind.VIDEO.value, 0),
        image_task_count=counts.get(TaskKind.IMAGE.value, 0),
    )


async def _require_user(session: AsyncSession, user_id: str) -> User:
    user = await user_service.get_user(session, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


async def _task_page(
    session: AsyncSession,
    user_id: str,
    kind: TaskKind,
    paging: PageParams,
    provider: Provider | None = None,
    status: TaskStatus | None = None,
) -> Page[TaskRead]:
    tasks, total = await ledger.list_tasks(
        session,
        user_id,
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


@router.get("/users", response_model=Page[AdminUserRead])
async def list_users(
    role: Role | None = None,
    keyword: str | None = None,
    paging: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_db),
) -> Page[AdminUserRead]:
    users, total = await user_service.list_users(
        session,
        offset=paging.offset,
        limit=paging.limit,
        role=role.value if role else None,
        keyword=keyword,
    )
    counts = await admin_service.task_counts(session, [user.id for user in users])
    return Page[AdminUserRead](
        items=[_admin_user(user, counts[user.id]) for user in users],
        total=total,
        page=paging.page,
        limit=paging.limit,
    )


@router.get("/users/{user_id}", response_model=AdminUserDetail)
async def user_detail(
    user_id: str,
    session: AsyncSession = Depends(get_db),
    secret_manager: SecretManager = Depends(get_secret_manager),
) -> AdminUserDetail:
    user = await _require_user(session, user_id)
    counts = await admin_service.task_counts(session, [user.id])
    config = await get_display_config(session, secret_manager, user.id)
    await session.commit()
    return AdminUserDetail(**_admin_user(user, counts[user.id]).model_dump(), config=config)


@router.get("/users/{user_id}/video-tasks", response_model=Page[TaskRead])
async def user_video_tasks(
    user_id: str,
    provider: Provider | None = None,
    status: TaskStatus | None = None,
    paging: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_db),
) -> Page[TaskRead]:
    await _require_user(session, user_id)
    return await _task_page(session, user_id, TaskKind.VIDEO, paging, provider, status)


@router.get("/users/{user_id}/image-tasks", response_model=Page[TaskRead])
async def user_image_tasks(
    user_id: str,
    paging: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_db),
) -> Page[TaskRead]:
    await _require_user(session, user_id)
    return await _task_page(session, user_id, TaskKind.IMAGE, paging)


@router.put("/users/{user_id}/reset-password", response_model=Message)
async def reset_password(
    user_id: str,
    payload: PasswordReset,
    session: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
) -> Message:
    if user_id == admin.user_id:
        raise ValidationError("Use the change-password endpoint for your own account")
    user = await _require_user(session, user_id)
    await user_service.reset_user_password(session, user, payload.new_password)
    await session.commit()
    return Message(message=f"Password reset for {user.username}")


@router.get("/stats", response_model=SystemStats)
async def stats(session: AsyncSession = Depends(get_db)) -> SystemStats:
    return SystemStats(**await admin_service.system_stats(session))

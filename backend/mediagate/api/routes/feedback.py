"""Feedback endpoints for users and admins."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.dependencies import PageParams, get_current_principal, get_db, page_params, require_admin
from mediagate.models.enums import FeedbackStatus, FeedbackType
from mediagate.schemas.common import Page
from mediagate.schemas.feedback import (
    FeedbackCreate,
    FeedbackRead,
    FeedbackReply,
    FeedbackStats,
    FeedbackStatusUpdate,
)
from mediagate.services import feedback as feedback_service
from mediagate.services.auth import Principal

router = APIRouter(prefix="/feedback", tags=["feedback"])


def _page(items, total: int, paging: PageParams) -> Page[FeedbackRead]:
    return Page[FeedbackRead](
        items=[FeedbackRead.model_validate(item) for item in items],
        total=total,
        page=paging.page,
        limit=paging.limit,
    )


@router.post("", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def create_feedback(
    payload: FeedbackCreate,
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> FeedbackRead:
    feedback = await feedback_service.create_feedback(session, principal.user_id, principal.username, payload)
    await session.commit()
    return FeedbackRead.model_validate(feedback)


@router.get("/my", response_model=Page[FeedbackRead])
async def my_feedback(
    paging: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Page[FeedbackRead]:
    items, total = await feedback_service.list_user_feedback(
        session, principal.user_id, offset=paging.offset, limit=paging.limit
    )
    return _page(items, total, paging)


@router.get("/admin/all", response_model=Page[FeedbackRead])
async def all_feedback(
    status_filter: FeedbackStatus | None = Query(None, alias="status"),
    type_filter: FeedbackType | None = Query(None, alias="type"),
    keyword: str | None = None,
    paging: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_db),
    _: Principal = Depends(require_admin),
) -> Page[FeedbackRead]:
    items, total = await feedback_service.list_all_feedback(
        session,
        offset=paging.offset,
        limit=paging.limit,
        status=status_filter,
        type_=type_filter,
        keyword=keyword,
    )
    return _page(items, total, paging)


@router.put("/admin/{feedback_id}/reply", response_model=FeedbackRead)
async def reply_feedback(
    feedback_id: str,
    payload: FeedbackReply,
    session: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
) -> FeedbackRead:
    feedback = await feedback_service.reply_feedback(session, feedback_id, admin.username, payload)
    await session.commit()
    return FeedbackRead.model_validate(feedback)


@router.put("/admin/{feedback_id}/status", response_model=FeedbackRead)
async def update_feedback_status(
    feedback_id: str,
    payload: FeedbackStatusUpdate,
    session: AsyncSession = Depends(get_db),
    _: Principal = Depends(require_admin),
) -> FeedbackRead:
    feedback = await feedback_service.update_feedback_status(session, feedback_id, payload.status)
    await session.commit()
    return FeedbackRead.model_validate(feedback)


@router.get("/admin/stats", response_model=FeedbackStats)
async def feedback_stats(
    session: AsyncSession = Depends(get_db),
    _: Principal = Depends(require_admin),
) -> FeedbackStats:
    return FeedbackStats(**await feedback_service.feedback_stats(session))

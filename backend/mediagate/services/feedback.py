"""Feedback tickets submitted by users and answered by admins."""
from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.errors import NotFoundError
from mediagate.db.filters import LIKE_ESCAPE, contains_pattern
from mediagate.models.enums import FeedbackStatus, FeedbackType
from mediagate.models.feedback import Feedback
from mediagate.models.user import utcnow
from mediagate.schemas.feedback import FeedbackCreate, FeedbackReply

logger = logging.getLogger(__name__)


async def create_feedback(session: AsyncSession, user_id: str, username: str, data: FeedbackCreate) -> Feedback:
    feedback = Feedback(
        user_id=user_id,
        username=username,
        title=data.title.strip(),
        content=data.content.strip(),
        type=data.type.value,
        status=FeedbackStatus.OPEN.value,
    )
    session.add(feedback)
    await session.flush()
    logger.info("User %s submitted %s feedback %s", username, feedback.type, feedback.id)
    return feedback


async def _page(session: AsyncSession, query, offset: int, limit: int) -> tuple[list[Feedback], int]:
    total = await session.scalar(select(func.count()).select_from(query.subquery()))
    result = await session.execute(query.order_by(Feedback.created_at.desc()).offset(offset).limit(limit))
    return list(result.scalars().all()), total or 0


async def list_user_feedback(session: AsyncSession, user_id: str, *, offset: int, limit: int) -> tuple[list[Feedback], int]:
    return await _page(session, select(Feedback).where(Feedback.user_id == user_id), offset, limit)


async def list_all_feedback(
    session: AsyncSession,
    *,
    offset: int,
    limit: int,
    status: FeedbackStatus | None = None,
    type_: FeedbackType | None = None,
    keyword: str | None = None,
) -> tuple[list[Feedback], int]:
    query = select(Feedback)
    if status:
        query = query.where(Feedback.status == status.value)
    if type_:
        query = query.where(Feedback.type == type_.value)
    if keyword:
        pattern = contains_pattern(keyword)
        query = query.where(
            or_(Feedback.title.ilike(pattern, escape=LIKE_ESCAPE), Feedback.content.ilike(pattern, escape=LIKE_ESCAPE))
        )
    return await _page(session, query, offset, limit)


async def _get(session: AsyncSession, feedback_id: str) -> Feedback:
    feedback = await session.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")
    return feedback


async def reply_feedback(session: AsyncSession, feedback_id: str, admin_username: str, data: FeedbackReply) -> Feedback:
    feedback = await _get(session, feedback_id)
    now = utcnow()
    feedback.admin_reply = data.reply.strip()
    feedback.status = data.status.value
    feedback.replied_at = now
    feedback.replied_by = admin_username
    feedback.updated_at = now
    await session.flush()
    logger.info("Admin %s replied to feedback %s", admin_username, feedback_id)
    return feedback


async def update_feedback_status(session: AsyncSession, feedback_id: str, status: FeedbackStatus) -> Feedback:
    feedback = await _get(session, feedback_id)
    feedback.status = status.value
    feedback.updated_at = utcnow()
    await session.flush()
    return feedback


async def feedback_stats(session: AsyncSession) -> dict:
    total = await session.scalar(select(func.count(Feedback.id)))
    by_status = await session.execute(select(Feedback.status, func.count(Feedback.id)).group_by(Feedback.status))
    by_type = await session.execute(select(Feedback.type, func.count(Feedback.id)).group_by(Feedback.type))
    return {
        "total": total or 0,
        "by_status": {status: count for status, count in by_status.all()},
        "by_type": {type_: count for type_, count in by_type.all()},
    }

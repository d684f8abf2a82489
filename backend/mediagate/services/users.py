"""User service functions for CRUD and authentication."""
from __future__ import annotations

import logging
import secrets
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediagate.core.errors import ValidationError
from mediagate.core.security import PasswordHasher
from mediagate.db.filters import LIKE_ESCAPE, contains_pattern
from mediagate.models.enums import Role
from mediagate.models.user import User, utcnow
from mediagate.schemas.user import UserCreate

logger = logging.getLogger(__name__)

BOOTSTRAP_USERNAME = "admin"


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    normalized = username.lower()
    result = await session.execute(select(User).where(User.username == normalized))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, user_in: UserCreate, role: Role = Role.USER) -> User:
    username = user_in.username.lower()
    if await get_user_by_username(session, username):
        raise ValidationError("Username already exists")
    email = user_in.email.lower() if user_in.email else None
    if email and await get_user_by_email(session, email):
        raise ValidationError("Email already registered")
    user = User(
        username=username,
        email=email,
        password_hash=PasswordHasher.hash(user_in.password),
        role=role.value,
    )
    session.add(user)
    await session.flush()
    logger.info("Created %s user %s", user.role, user.username)
    return user


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    user = await get_user_by_username(session, username)
    if not user:
        return None
    if not PasswordHasher.verify(password, user.password_hash):
        return None
    return user


async def record_login(session: AsyncSession, user: User) -> User:
    user.last_login_at = utcnow()
    await session.flush()
    return user


async def users_exist(session: AsyncSession) -> bool:
    result = await session.execute(select(User.id))
    return result.first() is not None


async def update_user_password(session: AsyncSession, user: User, old_password: str, new_password: str) -> User:
    if not PasswordHasher.verify(old_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = PasswordHasher.hash(new_password)
    await session.flush()
    return user


async def reset_user_password(session: AsyncSession, user: User, new_password: str) -> User:
    user.password_hash = PasswordHasher.hash(new_password)
    await session.flush()
    logger.info("Password reset for user %s", user.username)
    return user


async def list_users(
    session: AsyncSession,
    *,
    offset: int,
    limit: int,
    role: str | None = None,
    keyword: str | None = None,
) -> tuple[list[User], int]:
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if keyword:
        query = query.where(User.username.ilike(contains_pattern(keyword), escape=LIKE_ESCAPE))
    total = await session.scalar(select(func.count()).select_from(query.subquery()))
    result = await session.execute(query.order_by(User.created_at.desc()).offset(offset).limit(limit))
    return list(result.scalars().all()), total or 0


async def list_user_ids(session: AsyncSession) -> list[str]:
    result = await session.execute(select(User.id))
    return list(result.scalars().all())


async def bootstrap_admin(session: AsyncSession, credentials_file: str) -> User | None:
    """Create the first admin account when the user table is empty.

    The generated password is written to ``credentials_file`` and never logged.
    """
    if await users_exist(session):
        return None
    password = secrets.token_hex(6)
    user = await create_user(session, UserCreate(username=BOOTSTRAP_USERNAME, password=password), role=Role.ADMIN)
    path = Path(credentials_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"username: {user.username}\npassword: {password}\n", encoding="utf-8")
    logger.warning("Created initial admin account; credentials written to %s", path.resolve())
    return user

import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobhub.common.enums import UserRole
from jobhub.common.exceptions import BadRequestError, PermissionDeniedError
from jobhub.common.security import decode_token
from jobhub.core.lifecycle.schemas import Actor
from jobhub.db.models.user import User
from jobhub.db.session import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def user_from_token(db: AsyncSession, token: str) -> User | None:
    """Resolve an access token to an active user, or None if it is unusable."""
    try:
        payload = decode_token(token)
    except ValueError:
        return None
    if payload.get("type") != "access":
        return None
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_deleted.is_(False))
    )
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    authorization: str = Header(..., description="Bearer <token>"),
    db: AsyncSession = Depends(get_db),
) -> User:
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        raise PermissionDeniedError("Invalid authorization header format")

    user = await user_from_token(db, token)
    if user is None:
        raise PermissionDeniedError("Invalid or expired token")
    return user


async def get_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=current_user.id, role=UserRole(current_user.role))


async def expected_version(
    if_match: str | None = Header(None, description="Job version the change is based on"),
) -> int | None:
    """Read the optimistic-concurrency precondition from the If-Match header."""
    if if_match is None:
        return None
    value = if_match.strip().removeprefix("W/").strip('"')
    try:
        return int(value)
    except ValueError:
        raise BadRequestError("If-Match must carry the job version number")

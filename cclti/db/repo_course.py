"""Idempotent upserts for users, courses, and enrollments derived from launches."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

import uuid_utils
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cclti.db.base import BaseEntity
from cclti.db.models_course import CourseEntity, EnrollmentEntity, UserEntity

DEFAULT_COURSE_TITLE = "Untitled Course"

EntityT = TypeVar("EntityT", bound=BaseEntity)


class UserUpsertData(BaseModel):
    """Profile fields for creating or refreshing a platform user."""

    sub: str
    issuer: str
    name: str
    given_name: str = ""
    family_name: str = ""
    email: str = ""
    picture: str = ""


class CourseUpsertData(BaseModel):
    """Context fields for creating or refreshing a course."""

    issuer: str
    context_id: str
    title: str = DEFAULT_COURSE_TITLE
    label: str = ""


async def get_user(session: AsyncSession, sub: str, issuer: str) -> UserEntity | None:
    """Look up a user by platform subject and issuer."""
    stmt = select(UserEntity).where(UserEntity.sub == sub, UserEntity.issuer == issuer)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_course(
    session: AsyncSession, issuer: str, context_id: str
) -> CourseEntity | None:
    """Look up a course by issuer and platform context id."""
    stmt = select(CourseEntity).where(
        CourseEntity.issuer == issuer, CourseEntity.context_id == context_id
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_enrollment(
    session: AsyncSession, user_id: str, course_id: str
) -> EnrollmentEntity | None:
    """Look up a user's enrollment in a course."""
    stmt = select(EnrollmentEntity).where(
        EnrollmentEntity.user_id == user_id,
        EnrollmentEntity.course_id == course_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _insert_or_fetch(
    session: AsyncSession,
    entity: EntityT,
    fetch: Callable[[], Awaitable[EntityT | None]],
) -> EntityT:
    """Insert inside a SAVEPOINT; on a unique-key conflict return the stored row.

    A concurrent first launch can insert the same natural key between our
    select and our insert. Only the savepoint is rolled back in that case.
    """
    try:
        async with session.begin_nested():
            session.add(entity)
    except IntegrityError:
        existing = await fetch()
        if existing is None:
            raise
        return existing
    return entity


async def upsert_user(session: AsyncSession, data: UserUpsertData) -> UserEntity:
    """Create the user for (sub, issuer) or refresh its profile fields."""
    existing = await get_user(session, data.sub, data.issuer)
    if existing is None:
        created = UserEntity(
            id=str(uuid_utils.uuid7()),
            sub=data.sub,
            issuer=data.issuer,
            name=data.name,
            given_name=data.given_name,
            family_name=data.family_name,
            email=data.email,
            picture=data.picture,
        )
        existing = await _insert_or_fetch(
            session, created, lambda: get_user(session, data.sub, data.issuer)
        )
        if existing is created:
            return created

    existing.name = data.name
    existing.given_name = data.given_name
    existing.family_name = data.family_name
    existing.email = data.email
    existing.picture = data.picture
    await session.flush()
    return existing


async def upsert_course(session: AsyncSession, data: CourseUpsertData) -> CourseEntity:
    """Create the course for (issuer, context_id) or refresh title and label."""
    existing = await get_course(session, data.issuer, data.context_id)
    if existing is None:
        created = CourseEntity(
            id=str(uuid_utils.uuid7()),
            issuer=data.issuer,
            context_id=data.context_id,
            title=data.title,
            label=data.label,
        )
        existing = await _insert_or_fetch(
            session, created, lambda: get_course(session, data.issuer, data.context_id)
        )
        if existing is created:
            return created

    existing.title = data.title
    existing.label = data.label
    await session.flush()
    return existing


async def upsert_enrollment(
    session: AsyncSession,
    *,
    user_id: str,
    course_id: str,
    role: str,
    seen_at: datetime | None,
) -> EnrollmentEntity:
    """Create or refresh an enrollment's role and last-seen time.

    A ``seen_at`` of None leaves an existing enrollment untouched.
    """
    existing = await get_enrollment(session, user_id, course_id)
    if existing is None:
        created = EnrollmentEntity(
            id=str(uuid_utils.uuid7()),
            user_id=user_id,
            course_id=course_id,
            role=role,
            last_seen=seen_at,
        )
        existing = await _insert_or_fetch(
            session, created, lambda: get_enrollment(session, user_id, course_id)
        )
        if existing is created:
            return created

    if seen_at is not None:
        existing.role = role
        existing.last_seen = seen_at
        await session.flush()
    return existing

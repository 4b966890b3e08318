"""Turn a verified identity into user/course/enrollment rows and a session."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from cclti.db.repo_course import (
    CourseUpsertData,
    UserUpsertData,
    upsert_course,
    upsert_enrollment,
    upsert_user,
)
from cclti.db.repo_session import create_session
from cclti.lti.types import LaunchOutcome, SessionIdentity


async def provision_session(
    db: AsyncSession,
    *,
    user: UserUpsertData,
    course: CourseUpsertData,
    role: str,
    now: datetime,
    session_ttl: int,
) -> LaunchOutcome:
    """Upsert the user, course and enrollment, then issue a session."""
    user_entity = await upsert_user(db, user)
    course_entity = await upsert_course(db, course)
    await upsert_enrollment(
        db,
        user_id=user_entity.id,
        course_id=course_entity.id,
        role=role,
        seen_at=now,
    )
    issued = await create_session(
        db,
        user_id=user_entity.id,
        course_id=course_entity.id,
        role=role,
        now=now,
        ttl_seconds=session_ttl,
    )
    return LaunchOutcome(
        identity=SessionIdentity(
            user_id=issued.user_id,
            course_id=issued.course_id,
            role=issued.role,
        ),
        session_token=issued.token,
        expires_at=issued.expires_at,
    )

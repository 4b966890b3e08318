"""Developer launch that bypasses the platform handshake (dev mode only)."""

from datetime import UTC, datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import JSONResponse

from cclti.core.settings import LtiSettings
from cclti.db.engine import get_session
from cclti.db.repo_course import (
    CourseUpsertData,
    UserUpsertData,
    upsert_enrollment,
    upsert_user,
)
from cclti.lti.claims import ROLE_INSTRUCTOR, ROLE_STUDENT
from cclti.lti.deps import load_settings
from cclti.lti.provisioning import provision_session
from cclti.lti.responses import session_redirect

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/lti", tags=["lti"])

HTTP_FORBIDDEN = 403
DEV_ISSUER = "dev"

DEV_INSTRUCTOR = UserUpsertData(
    sub="dev-user-1",
    issuer=DEV_ISSUER,
    name="Dev Instructor",
    given_name="Dev",
    family_name="Instructor",
    email="dev@example.com",
)
DEV_STUDENT = UserUpsertData(
    sub="dev-user-2",
    issuer=DEV_ISSUER,
    name="Sam Student",
    given_name="Sam",
    family_name="Student",
    email="sam@example.com",
)
DEV_COURSE = CourseUpsertData(
    issuer=DEV_ISSUER,
    context_id="dev-course-101",
    title="EDUC 101: Introduction to Learning",
    label="EDUC 101",
)


@router.get("/dev", response_model=None)
async def dev_launch(
    db: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[LtiSettings, Depends(load_settings)],
) -> RedirectResponse | JSONResponse:
    """GET /lti/dev -- sign in as the dev instructor without a platform."""
    if not settings.dev_mode:
        return JSONResponse(
            {"error": "forbidden", "error_description": "Dev mode is disabled"},
            status_code=HTTP_FORBIDDEN,
        )

    now = datetime.now(UTC)
    outcome = await provision_session(
        db,
        user=DEV_INSTRUCTOR,
        course=DEV_COURSE,
        role=ROLE_INSTRUCTOR,
        now=now,
        session_ttl=settings.session_ttl,
    )

    student = await upsert_user(db, DEV_STUDENT)
    await upsert_enrollment(
        db,
        user_id=student.id,
        course_id=outcome.identity.course_id,
        role=ROLE_STUDENT,
        seen_at=None,
    )

    logger.info("dev_launch", user_id=outcome.identity.user_id)
    return session_redirect(outcome, settings)

"""FastAPI dependencies exposing the launched session to API handlers."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from cclti.core.settings import LtiSettings
from cclti.db.engine import get_session
from cclti.db.repo_session import get_live_session, renew_session
from cclti.lti.claims import ROLE_INSTRUCTOR
from cclti.lti.deps import load_settings
from cclti.lti.types import SessionIdentity


async def require_session(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[LtiSettings, Depends(load_settings)],
) -> SessionIdentity:
    """Resolve the session cookie to (user_id, course_id, role), sliding its expiry."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    now = datetime.now(UTC)
    entity = await get_live_session(db, token, now=now)
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please relaunch from your course.",
        )
    await renew_session(db, entity, now=now, ttl_seconds=settings.session_ttl)
    return SessionIdentity(
        user_id=entity.user_id,
        course_id=entity.course_id,
        role=entity.role,
    )


async def require_instructor(
    identity: Annotated[SessionIdentity, Depends(require_session)],
) -> SessionIdentity:
    """Allow only instructor sessions through."""
    if identity.role != ROLE_INSTRUCTOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor role required",
        )
    return identity

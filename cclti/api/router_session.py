"""Session identity endpoints for the app's front end."""

from typing import Annotated

from fastapi import APIRouter, Depends

from cclti.api.deps import require_instructor, require_session
from cclti.lti.types import SessionIdentity

router = APIRouter(prefix="/api", tags=["session"])

CurrentSession = Annotated[SessionIdentity, Depends(require_session)]
InstructorSession = Annotated[SessionIdentity, Depends(require_instructor)]


@router.get("/session")
async def current_session(identity: CurrentSession) -> SessionIdentity:
    """GET /api/session -- who the cookie belongs to, in which course, as what."""
    return identity


@router.get("/session/instructor")
async def instructor_check(identity: InstructorSession) -> SessionIdentity:
    """GET /api/session/instructor -- 403 unless the session is an instructor's."""
    return identity

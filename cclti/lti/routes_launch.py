"""LTI resource link launch endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Form
from fastapi.responses import RedirectResponse
from starlette.responses import JSONResponse

from cclti.core.errors import LtiError
from cclti.core.settings import LtiSettings
from cclti.lti.deps import get_orchestrator, load_settings
from cclti.lti.orchestrator import LaunchOrchestrator
from cclti.lti.responses import lti_error_response, session_redirect
from cclti.lti.types import Launch

router = APIRouter(prefix="/lti", tags=["lti"])


@router.post("/launch", response_model=None)
async def launch(
    orchestrator: Annotated[LaunchOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[LtiSettings, Depends(load_settings)],
    id_token: Annotated[str, Form()] = "",
    state: Annotated[str, Form()] = "",
) -> RedirectResponse | JSONResponse:
    """POST /lti/launch -- verify the platform's id_token and start a session.

    Launch failures become the generic error response. The state and nonce
    are already committed as consumed by then.
    """
    try:
        outcome = await orchestrator.launch(Launch(id_token=id_token, state=state))
    except LtiError as exc:
        return lti_error_response(exc, settings, event="lti_launch_rejected")
    return session_redirect(outcome, settings)

"""OIDC third-party initiated login endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette.responses import JSONResponse

from cclti.core.errors import LtiError
from cclti.core.settings import LtiSettings
from cclti.lti.deps import get_orchestrator, load_settings
from cclti.lti.orchestrator import LaunchOrchestrator
from cclti.lti.responses import HTTP_FOUND, lti_error_response
from cclti.lti.types import LoginInitiate

router = APIRouter(prefix="/lti", tags=["lti"])

LOGIN_PARAMS = ("iss", "login_hint", "target_link_uri", "lti_message_hint", "client_id")


async def _collect_params(request: Request) -> LoginInitiate:
    """Platforms may initiate with GET query params or a POSTed form."""
    params = {k: v for k, v in request.query_params.items() if k in LOGIN_PARAMS}
    if request.method == "POST":
        form = await request.form()
        params.update(
            {k: v for k, v in form.items() if k in LOGIN_PARAMS and isinstance(v, str)}
        )
    return LoginInitiate(**params)


@router.api_route("/login", methods=["GET", "POST"], response_model=None)
async def login(
    request: Request,
    orchestrator: Annotated[LaunchOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[LtiSettings, Depends(load_settings)],
) -> RedirectResponse | JSONResponse:
    """GET|POST /lti/login -- start the OIDC handshake with the platform."""
    command = await _collect_params(request)
    try:
        redirect = await orchestrator.initiate_login(command)
    except LtiError as exc:
        return lti_error_response(exc, settings, event="lti_login_rejected")
    return RedirectResponse(url=redirect.url, status_code=HTTP_FOUND)

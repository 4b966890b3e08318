"""Response helpers for LTI login and launch outcomes."""

from urllib.parse import urlsplit

import structlog
from fastapi.responses import RedirectResponse
from starlette.responses import JSONResponse, Response

from cclti.core.errors import GENERIC_MESSAGE, LtiError
from cclti.core.settings import LtiSettings
from cclti.lti.types import LaunchOutcome

logger = structlog.get_logger(__name__)

HTTP_FOUND = 302


def lti_error_response(exc: LtiError, settings: LtiSettings, *, event: str) -> JSONResponse:
    """Log the failure in full and return the caller-safe error body."""
    logger.warning(event, error_code=exc.code, detail=exc.detail)
    body = {
        "error": "lti_authentication_failed",
        "error_description": GENERIC_MESSAGE,
    }
    if settings.show_error_detail:
        body["error_code"] = exc.code
        body["error_description"] = exc.detail
    return JSONResponse(body, status_code=exc.status_code)


def set_session_cookie(
    response: Response, outcome: LaunchOutcome, settings: LtiSettings
) -> None:
    """Attach the session cookie.

    SameSite=None because the launch post arrives from the platform's frame
    on another origin.
    """
    response.set_cookie(
        key=settings.session_cookie_name,
        value=outcome.session_token,
        max_age=settings.session_ttl,
        expires=outcome.expires_at,
        path=cookie_path(settings),
        secure=not settings.dev_mode,
        httponly=True,
        samesite="none",
    )


def cookie_path(settings: LtiSettings) -> str:
    """Cookie path derived from the app URL's path component."""
    return urlsplit(settings.base_url).path.rstrip("/") + "/"


def session_redirect(outcome: LaunchOutcome, settings: LtiSettings) -> RedirectResponse:
    """Redirect into the app with the new session cookie set."""
    response = RedirectResponse(url=f"{settings.base_url}/", status_code=HTTP_FOUND)
    set_session_cookie(response, outcome, settings)
    return response

"""Commands and results exchanged with the launch orchestrator."""

from datetime import datetime

from pydantic import BaseModel


class LoginInitiate(BaseModel):
    """Third-party initiated login request from a platform."""

    iss: str = ""
    login_hint: str = ""
    target_link_uri: str = ""
    lti_message_hint: str = ""
    client_id: str = ""


class Launch(BaseModel):
    """Platform form post carrying the signed id_token."""

    id_token: str = ""
    state: str = ""


class LoginRedirect(BaseModel):
    """Where to send the browser to authenticate with the platform."""

    url: str
    state: str
    nonce: str


class SessionIdentity(BaseModel):
    """The only identity downstream handlers ever see."""

    user_id: str
    course_id: str
    role: str


class LaunchOutcome(BaseModel):
    """A completed launch: the session identity and its raw cookie token."""

    identity: SessionIdentity
    session_token: str
    expires_at: datetime

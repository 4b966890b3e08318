"""Standard OIDC and LTI 1.3 claim validation for launch id_tokens."""

import math
import secrets
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cclti.core.errors import (
    AudienceMismatch,
    ClaimExpired,
    ClaimIssuedInFuture,
    IssuerMismatch,
    MalformedToken,
    MissingCourseContext,
    NonceInvalidOrReused,
    UnsupportedLtiVersion,
)

LTI_CLAIM_PREFIX = "https://purl.imsglobal.org/spec/lti/claim/"
CLAIM_VERSION = LTI_CLAIM_PREFIX + "version"
CLAIM_ROLES = LTI_CLAIM_PREFIX + "roles"
CLAIM_CONTEXT = LTI_CLAIM_PREFIX + "context"
CLAIM_DEPLOYMENT_ID = LTI_CLAIM_PREFIX + "deployment_id"

LTI_VERSION = "1.3.0"
INSTRUCTOR_ROLE_MARKERS = ("#Instructor", "#TeachingAssistant")

ROLE_INSTRUCTOR = "instructor"
ROLE_STUDENT = "student"


class LtiContext(BaseModel):
    """The course context a launch came from."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    title: str | None = None
    label: str | None = None


class LaunchClaims(BaseModel):
    """Verified id_token claims used to provision the launch."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sub: str
    iss: str
    nonce: str = ""
    name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    email: str | None = None
    picture: str | None = None
    version: str = Field(default="", alias=CLAIM_VERSION)
    roles: list[str] = Field(default_factory=list, alias=CLAIM_ROLES)
    context: LtiContext | None = Field(default=None, alias=CLAIM_CONTEXT)
    deployment_id: str | None = Field(default=None, alias=CLAIM_DEPLOYMENT_ID)

    @property
    def display_name(self) -> str:
        full = f"{self.given_name or ''} {self.family_name or ''}".strip()
        return full or self.name or "Unknown"


def _numeric_claim(payload: dict[str, Any], claim: str) -> int:
    value = payload.get(claim)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise MalformedToken(f"JWT {claim} claim missing or not numeric")
    if not math.isfinite(value):
        raise MalformedToken(f"JWT {claim} claim is not a finite number")
    return int(value)


def _audience_matches(payload: dict[str, Any], client_id: str) -> bool:
    aud = payload.get("aud")
    if isinstance(aud, str):
        return aud == client_id
    if isinstance(aud, list):
        if client_id not in aud:
            return False
        azp = payload.get("azp")
        return len(aud) == 1 or azp is None or azp == client_id
    return False


def check_token_claims(
    payload: dict[str, Any],
    *,
    issuer: str,
    client_id: str,
    expected_nonce: str,
    now: int,
    clock_skew: int,
) -> None:
    """Check exp, iat, iss, aud, and that nonce matches the login state.

    Raises the specific LtiError for the first failing claim.
    """
    exp = _numeric_claim(payload, "exp")
    iat = _numeric_claim(payload, "iat")
    if exp <= now:
        raise ClaimExpired(f"JWT expired at {exp} (now {now})")
    if iat > now + clock_skew:
        raise ClaimIssuedInFuture(f"JWT issued in the future: iat {iat} (now {now})")
    if payload.get("iss") != issuer:
        raise IssuerMismatch(f"JWT iss {payload.get('iss')!r} != {issuer!r}")
    if not _audience_matches(payload, client_id):
        raise AudienceMismatch(f"JWT aud {payload.get('aud')!r} lacks {client_id!r}")

    nonce = payload.get("nonce")
    if not isinstance(nonce, str) or not nonce:
        raise NonceInvalidOrReused("JWT nonce missing")
    if not secrets.compare_digest(nonce.encode(), expected_nonce.encode()):
        raise NonceInvalidOrReused("JWT nonce does not match login state")


def parse_launch_claims(payload: dict[str, Any]) -> tuple[LaunchClaims, LtiContext]:
    """Check the LTI version and course context.

    Returns the typed claims together with the (required) course context.
    """
    try:
        claims = LaunchClaims.model_validate(payload)
    except ValidationError as exc:
        raise MalformedToken(f"JWT claims have unexpected shape: {exc}") from exc
    if not claims.sub:
        raise MalformedToken("JWT sub claim is empty")
    if claims.version != LTI_VERSION:
        raise UnsupportedLtiVersion(f"Unsupported LTI version: {claims.version!r}")
    context = claims.context
    if context is None or not context.id:
        raise MissingCourseContext("No course context in JWT")
    return claims, context


def derive_role(roles: list[str]) -> str:
    """Collapse LTI role URIs into the binary instructor/student model."""
    for role in roles:
        if any(marker in role for marker in INSTRUCTOR_ROLE_MARKERS):
            return ROLE_INSTRUCTOR
    return ROLE_STUDENT

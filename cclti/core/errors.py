"""Launch authentication failures.

Every error here is fatal for the current request and never retried. The
``detail`` is for server-side logs; callers only see it in debug mode.
"""

HTTP_BAD_REQUEST = 400
HTTP_BAD_GATEWAY = 502

GENERIC_MESSAGE = (
    "LTI authentication failed. Please try relaunching from your course."
)


class LtiError(Exception):
    """Base class for login-initiation and launch failures."""

    code = "lti_error"
    status_code = HTTP_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class MissingParameter(LtiError):
    code = "missing_parameter"


class UnregisteredPlatform(LtiError):
    code = "unregistered_platform"


class ClientIdMismatch(LtiError):
    code = "client_id_mismatch"


class MalformedToken(LtiError):
    code = "malformed_token"


class KeyNotFound(LtiError):
    code = "key_not_found"


class SignatureInvalid(LtiError):
    code = "signature_invalid"


class ClaimExpired(LtiError):
    code = "claim_expired"


class ClaimIssuedInFuture(LtiError):
    code = "claim_issued_in_future"


class IssuerMismatch(LtiError):
    code = "issuer_mismatch"


class AudienceMismatch(LtiError):
    code = "audience_mismatch"


class NonceInvalidOrReused(LtiError):
    code = "nonce_invalid_or_reused"


class StateInvalidOrReused(LtiError):
    code = "state_invalid_or_reused"


class UnsupportedLtiVersion(LtiError):
    code = "unsupported_lti_version"


class MissingCourseContext(LtiError):
    code = "missing_course_context"


class JwksFetchFailure(LtiError):
    code = "jwks_fetch_failure"
    status_code = HTTP_BAD_GATEWAY

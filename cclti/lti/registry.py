"""Trust table of registered LTI platforms."""

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from cclti.core.errors import ClientIdMismatch, UnregisteredPlatform
from cclti.core.settings import LtiSettings

COMPOUND_KEY_SEPARATOR = "::"


class PlatformConfig(BaseModel):
    """One tool registration on a platform."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    auth_endpoint: str
    jwks_uri: str


class PlatformRegistry:
    """Resolves an issuer (and optional client_id) to its registration.

    Keys are either a bare issuer or ``issuer::client_id``; the compound form
    allows several registrations on the same platform.
    """

    def __init__(self, platforms: Mapping[str, PlatformConfig]) -> None:
        self._platforms = dict(platforms)

    @classmethod
    def from_settings(cls, settings: LtiSettings) -> "PlatformRegistry":
        """Build the registry from the primary platform and the JSON map."""
        platforms: dict[str, PlatformConfig] = {}
        if settings.lti_issuer:
            platforms[settings.lti_issuer] = PlatformConfig(
                client_id=settings.lti_client_id,
                auth_endpoint=settings.lti_auth_endpoint,
                jwks_uri=settings.lti_jwks_uri,
            )
        for key, entry in settings.lti_platforms.items():
            platforms[key] = PlatformConfig.model_validate(entry)
        return cls(platforms)

    def __len__(self) -> int:
        return len(self._platforms)

    def resolve(self, issuer: str, client_id: str | None = None) -> PlatformConfig:
        """Return the registration for issuer, checking client_id if supplied."""
        config = None
        if client_id:
            config = self._platforms.get(f"{issuer}{COMPOUND_KEY_SEPARATOR}{client_id}")
        if config is None:
            config = self._platforms.get(issuer)
        if config is None:
            raise UnregisteredPlatform(f"Unregistered platform: {issuer}")
        if client_id and client_id != config.client_id:
            raise ClientIdMismatch(
                f"client_id {client_id!r} is not registered for {issuer}"
            )
        return config

"""Platform JWKS retrieval and key selection."""

from urllib.parse import urlsplit

import httpx
import structlog
from pydantic import ValidationError

from cclti.core.errors import JwksFetchFailure, KeyNotFound
from cclti.core.settings import JWKS_TIMEOUT_DEFAULT
from cclti.crypto.types import JsonWebKey, JsonWebKeySet

logger = structlog.get_logger(__name__)


class JwksFetcher:
    """Fetches a platform's key set over HTTPS.

    One attempt per launch: TLS verification on, bounded timeout, no
    redirects, no retries, no caching.
    """

    def __init__(
        self,
        timeout: float = JWKS_TIMEOUT_DEFAULT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def fetch(self, jwks_uri: str) -> list[JsonWebKey]:
        """Return the keys published at ``jwks_uri``."""
        if urlsplit(jwks_uri).scheme != "https":
            raise JwksFetchFailure(f"JWKS URI must use https: {jwks_uri}")

        async with httpx.AsyncClient(
            timeout=self._timeout,
            verify=True,
            follow_redirects=False,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(
                    jwks_uri, headers={"Accept": "application/json"}
                )
                response.raise_for_status()
                document = JsonWebKeySet.model_validate_json(response.content)
            except (httpx.HTTPError, ValidationError) as exc:
                logger.warning("jwks_fetch_failed", jwks_uri=jwks_uri, error=str(exc))
                raise JwksFetchFailure(
                    f"Failed to fetch JWKS from {jwks_uri}: {exc}"
                ) from exc
        return document.keys


def select_jwk(keys: list[JsonWebKey], kid: str | None) -> JsonWebKey:
    """Pick the key that signed a token.

    A token naming a ``kid`` must find that exact key. Only a token without a
    ``kid`` falls back to the first RSA signing key in the set.
    """
    if kid is not None:
        for key in keys:
            if key.kid == kid and key.is_rsa_signing_key:
                return key
        raise KeyNotFound(f"No RSA signing key with kid {kid!r} in JWKS")

    for key in keys:
        if key.is_rsa_signing_key:
            return key
    raise KeyNotFound("JWKS contains no RSA signing key")

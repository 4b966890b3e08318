"""Type definitions for JWKS documents and parsed tokens."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class JsonWebKey(BaseModel):
    """Single JWK entry as published by a platform."""

    model_config = ConfigDict(extra="allow")

    kty: str = ""
    kid: str | None = None
    use: str | None = None
    alg: str | None = None
    n: str | None = None
    e: str | None = None

    @property
    def is_rsa_signing_key(self) -> bool:
        """True for RSA keys carrying n/e that are not reserved for encryption."""
        return (
            self.kty == "RSA"
            and bool(self.n)
            and bool(self.e)
            and self.use in (None, "sig")
        )


class JsonWebKeySet(BaseModel):
    """JSON Web Key Set document."""

    keys: list[JsonWebKey]


class ParsedToken(BaseModel):
    """A compact JWS split into its decoded parts, before verification."""

    header: dict[str, Any]
    payload: dict[str, Any]
    signing_input: bytes
    signature: bytes

    @property
    def kid(self) -> str | None:
        kid = self.header.get("kid")
        return kid if isinstance(kid, str) and kid else None

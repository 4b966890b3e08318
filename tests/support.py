"""Fake platform constants, keys and token helpers shared by the test suite."""

import secrets
import time
from typing import Any

import httpx
import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm
from pydantic import BaseModel

from cclti.crypto.types import JsonWebKey
from cclti.lti.claims import CLAIM_CONTEXT, CLAIM_DEPLOYMENT_ID, CLAIM_ROLES, CLAIM_VERSION

APP_URL = "https://tool.example.edu"
ISSUER = "https://lms.example.edu"
CLIENT_ID = "tool-client-1"
AUTH_ENDPOINT = "https://lms.example.edu/d2l/lti/authenticate"
JWKS_URI = "https://lms.example.edu/d2l/.well-known/jwks"

INSTRUCTOR_ROLE = "http://purl.imsglobal.org/vocab/lis/v2/membership#Instructor"
TA_ROLE = "http://purl.imsglobal.org/vocab/lis/v2/membership/Instructor#TeachingAssistant"
LEARNER_ROLE = "http://purl.imsglobal.org/vocab/lis/v2/membership#Learner"


class PlatformKey(BaseModel):
    """An RSA keypair the fake platform signs id_tokens with."""

    kid: str
    private_key_pem: str
    public_key_pem: str


def generate_platform_key(key_size: int = 2048) -> PlatformKey:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return PlatformKey(
        kid=f"platform-{secrets.token_hex(6)}",
        private_key_pem=private_pem,
        public_key_pem=public_pem,
    )


def platform_jwk(public_key_pem: str, kid: str | None) -> JsonWebKey:
    """The JWK the fake platform publishes for a PEM public key."""
    public_key = serialization.load_pem_public_key(public_key_pem.encode())
    members = RSAAlgorithm.to_jwk(public_key, as_dict=True)
    return JsonWebKey.model_validate(
        {**members, "kid": kid, "use": "sig", "alg": "RS256"}
    )


def launch_payload(nonce: str, /, **overrides: Any) -> dict[str, Any]:
    """A valid LTI resource-link launch payload for the fake platform."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "sub": "lms-user-42",
        "iat": now,
        "exp": now + 300,
        "nonce": nonce,
        "given_name": "Ada",
        "family_name": "Lovelace",
        "email": "ada@example.edu",
        CLAIM_VERSION: "1.3.0",
        CLAIM_DEPLOYMENT_ID: "deployment-1",
        CLAIM_ROLES: [LEARNER_ROLE],
        CLAIM_CONTEXT: {"id": "ctx-1", "title": "Course", "label": "C101"},
    }
    payload.update(overrides)
    return payload


def sign(
    payload: dict[str, Any],
    key: PlatformKey,
    *,
    kid: str | None = "",
) -> str:
    """Sign a payload RS256 with the key's kid (or an explicit/absent kid)."""
    headers: dict[str, Any] = {}
    if kid == "":
        headers["kid"] = key.kid
    elif kid is not None:
        headers["kid"] = kid
    return jwt.encode(payload, key.private_key_pem, algorithm="RS256", headers=headers)


def jwks_document(keys: list[PlatformKey]) -> dict[str, Any]:
    return {
        "keys": [
            platform_jwk(k.public_key_pem, k.kid).model_dump(exclude_none=True)
            for k in keys
        ]
    }


def jwks_transport(
    keys: list[PlatformKey], calls: list[httpx.Request] | None = None
) -> httpx.MockTransport:
    """Serve the keys' JWKS at JWKS_URI; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if str(request.url) == JWKS_URI:
            return httpx.Response(200, json=jwks_document(keys))
        return httpx.Response(404)

    return httpx.MockTransport(handler)

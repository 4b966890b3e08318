"""Compact JWS parsing and RS256 signature verification."""

import binascii
import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.utils import base64url_decode

from cclti.core.errors import MalformedToken, SignatureInvalid
from cclti.crypto.types import ParsedToken

JWS_SEGMENTS = 3
SUPPORTED_ALGORITHM = "RS256"


def _decode_json_segment(segment: str, name: str) -> dict[str, Any]:
    try:
        decoded = json.loads(base64url_decode(segment))
    except (binascii.Error, ValueError, UnicodeDecodeError) as exc:
        raise MalformedToken(f"JWT {name} is not base64url JSON") from exc
    if not isinstance(decoded, dict):
        raise MalformedToken(f"JWT {name} is not a JSON object")
    return decoded


def parse_token(token: str) -> ParsedToken:
    """Split a compact JWS and decode its header and payload.

    Structure is checked before any crypto work: exactly three non-empty
    segments, JSON object header and payload, and ``alg`` of RS256.
    """
    parts = token.split(".")
    if len(parts) != JWS_SEGMENTS or not all(parts):
        raise MalformedToken(f"JWT has {len(parts)} segments, expected 3")

    header_b64, payload_b64, signature_b64 = parts
    header = _decode_json_segment(header_b64, "header")
    if header.get("alg") != SUPPORTED_ALGORITHM:
        raise MalformedToken(f"Unsupported JWT alg: {header.get('alg')!r}")

    payload = _decode_json_segment(payload_b64, "payload")
    try:
        signature = base64url_decode(signature_b64)
    except (binascii.Error, ValueError) as exc:
        raise MalformedToken("JWT signature is not base64url") from exc

    return ParsedToken(
        header=header,
        payload=payload,
        signing_input=f"{header_b64}.{payload_b64}".encode("ascii"),
        signature=signature,
    )


def verify_signature(parsed: ParsedToken, public_key: RSAPublicKey) -> None:
    """Verify the RS256 (PKCS#1 v1.5 + SHA-256) signature of a parsed token."""
    try:
        public_key.verify(
            parsed.signature,
            parsed.signing_input,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except InvalidSignature as exc:
        raise SignatureInvalid("Invalid JWT signature") from exc

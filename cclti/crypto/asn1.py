"""Minimal DER encoder for turning RSA JWK material into a PEM public key."""

import base64
import textwrap

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.utils import base64url_decode

TAG_INTEGER = 0x02
TAG_BIT_STRING = 0x03
TAG_SEQUENCE = 0x30

# SEQUENCE { OID 1.2.840.113549.1.1.1 (rsaEncryption), NULL }
RSA_ENCRYPTION_ALGORITHM_ID = bytes.fromhex("300d06092a864886f70d0101010500")

MAX_SHORT_LENGTH = 0x7F
MAX_LONG_LENGTH = 0xFFFF
PEM_LINE_WIDTH = 64


def der_length(length: int) -> bytes:
    """Encode a DER definite length (short form or 0x81/0x82 long form)."""
    if length < 0:
        raise ValueError(f"negative DER length: {length}")
    if length <= MAX_SHORT_LENGTH:
        return bytes([length])
    if length <= 0xFF:
        return b"\x81" + bytes([length])
    if length <= MAX_LONG_LENGTH:
        return b"\x82" + length.to_bytes(2, byteorder="big")
    raise ValueError(f"DER length too large: {length}")


def der_tlv(tag: int, content: bytes) -> bytes:
    """Wrap content in a tag-length-value triple."""
    return bytes([tag]) + der_length(len(content)) + content


def der_integer(magnitude: bytes) -> bytes:
    """Encode a big-endian unsigned magnitude as a non-negative INTEGER."""
    stripped = magnitude.lstrip(b"\x00") or b"\x00"
    if stripped[0] & 0x80:
        stripped = b"\x00" + stripped
    return der_tlv(TAG_INTEGER, stripped)


def der_sequence(*elements: bytes) -> bytes:
    """Encode already-encoded elements as a SEQUENCE."""
    return der_tlv(TAG_SEQUENCE, b"".join(elements))


def der_bit_string(payload: bytes) -> bytes:
    """Encode a byte-aligned BIT STRING (zero unused bits)."""
    return der_tlv(TAG_BIT_STRING, b"\x00" + payload)


def rsa_spki_der(modulus: bytes, exponent: bytes) -> bytes:
    """Build a SubjectPublicKeyInfo DER blob for an RSA public key."""
    if not modulus.strip(b"\x00"):
        raise ValueError("RSA modulus is empty")
    if not exponent.strip(b"\x00"):
        raise ValueError("RSA exponent is empty")
    rsa_public_key = der_sequence(der_integer(modulus), der_integer(exponent))
    return der_sequence(RSA_ENCRYPTION_ALGORITHM_ID, der_bit_string(rsa_public_key))


def pem_armor(der: bytes, label: str = "PUBLIC KEY") -> str:
    """Base64-encode DER and wrap it in 64-column PEM armor."""
    body = "\n".join(textwrap.wrap(base64.b64encode(der).decode("ascii"), PEM_LINE_WIDTH))
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----\n"


def jwk_to_pem(n: str, e: str) -> str:
    """Convert base64url JWK ``n`` and ``e`` members into a PEM public key."""
    modulus = base64url_decode(n)
    exponent = base64url_decode(e)
    return pem_armor(rsa_spki_der(modulus, exponent))


def load_rsa_public_key(pem: str) -> RSAPublicKey:
    """Load a PEM SubjectPublicKeyInfo and require it to be RSA."""
    loaded = serialization.load_pem_public_key(pem.encode("ascii"))
    if not isinstance(loaded, RSAPublicKey):
        raise ValueError("PEM does not contain an RSA public key")
    return loaded

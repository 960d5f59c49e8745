"""Key material normalization for RSA request signing.

Partners hand out keys as Base64-encoded DER:
  private: PKCS#1 (``RSA PRIVATE KEY``)
  public:  SPKI, either as Base64 DER or as ready PEM text (``BEGIN PUBLIC KEY``)

Everything that turns those strings into usable ``cryptography`` key objects
lives here. Decode problems raise ``KeyDecodeError`` and are never swallowed.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..errors import KeyDecodeError

PRIVATE_KEY_LABEL = "RSA PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"
PEM_PUBLIC_MARKER = "BEGIN PUBLIC KEY"
PEM_LINE_WIDTH = 64

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class PrivateKeyDER:
    der: bytes


@dataclass(frozen=True)
class PublicKeyDER:
    der: bytes


@dataclass(frozen=True)
class PublicKeyPEM:
    pem: str


KeyMaterial = Union[PrivateKeyDER, PublicKeyDER, PublicKeyPEM]


def decode_der_base64(value: str) -> bytes:
    """Strict Base64 decode; embedded whitespace/newlines are tolerated."""
    if not isinstance(value, str):
        raise KeyDecodeError("key material must be a string")
    compact = _WS_RE.sub("", value)
    if not compact:
        raise KeyDecodeError("empty key material")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyDecodeError("key material is not valid Base64") from e


def der_to_pem(der: bytes, label: str) -> str:
    b64 = base64.b64encode(der).decode("ascii")
    lines = [b64[i:i + PEM_LINE_WIDTH] for i in range(0, len(b64), PEM_LINE_WIDTH)]
    body = "\n".join(lines)
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----\n"


def to_pem_private_key(der_b64: str) -> str:
    return der_to_pem(PrivateKeyDER(decode_der_base64(der_b64)).der, PRIVATE_KEY_LABEL)


def load_private_key(der_b64: str) -> rsa.RSAPrivateKey:
    pem = to_pem_private_key(der_b64)
    try:
        key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyDecodeError("private key is not a PKCS#1 RSA key") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyDecodeError("expected RSA private key")
    return key


def classify_public_key(value: str) -> Union[PublicKeyDER, PublicKeyPEM]:
    if isinstance(value, str) and PEM_PUBLIC_MARKER in value:
        return PublicKeyPEM(value)
    return PublicKeyDER(decode_der_base64(value))


def to_usable_public_key(value: str) -> rsa.RSAPublicKey:
    """Accept Base64 DER (SPKI) or PEM text and return an RSA public key."""
    material = classify_public_key(value)
    try:
        if isinstance(material, PublicKeyPEM):
            key = serialization.load_pem_public_key(material.pem.encode("utf-8"))
        else:
            key = serialization.load_der_public_key(material.der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyDecodeError("public key is not a valid SPKI key") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyDecodeError("expected RSA public key")
    return key


__all__ = [
    "PrivateKeyDER",
    "PublicKeyDER",
    "PublicKeyPEM",
    "KeyMaterial",
    "decode_der_base64",
    "der_to_pem",
    "to_pem_private_key",
    "load_private_key",
    "classify_public_key",
    "to_usable_public_key",
]

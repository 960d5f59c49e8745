"""RSA-SHA256 (PKCS#1 v1.5) signing of canonical request strings.

Client-side oriented but reused by the sandbox and tests.
"""
from __future__ import annotations

import base64

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from ..errors import KeyDecodeError, SigningError
from ..obs.prom import observe_signature
from ..protocol.canonical import SigningContext, build_canonical_string
from .keycodec import load_private_key


def sign_message(message: str, private_key_der_b64: str) -> str:
    try:
        sk = load_private_key(private_key_der_b64)
    except KeyDecodeError as e:
        raise SigningError(f"cannot load signing key: {e}") from e
    try:
        sig = sk.sign(message.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise SigningError("RSA-SHA256 signing failed") from e
    return base64.b64encode(sig).decode("ascii")


def sign(ctx: SigningContext, private_key_der_b64: str) -> str:
    """Sign ``ctx`` and return the Base64 signature for ``X-SIGNATURE``.

    Deterministic: PKCS#1 v1.5 adds no randomness, so identical inputs give
    identical signatures.
    """
    try:
        message = build_canonical_string(ctx)
    except (TypeError, ValueError) as e:
        raise SigningError("cannot build canonical string") from e
    sig = sign_message(message, private_key_der_b64)
    observe_signature(bodied=ctx.has_body)
    return sig


__all__ = ["sign", "sign_message"]

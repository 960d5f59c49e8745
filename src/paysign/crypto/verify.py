"""Server-side verification of partner request signatures.

Linear, no retries:
  1. timestamp format    -> malformed_timestamp
  2. timestamp freshness -> stale_timestamp
  3. rebuild canonical string
  4. normalize public key (PEM pass-through or Base64 DER)
  5. RSA-SHA256 verify   -> signature_mismatch

Anything raised in 3-5 is converted to a failed outcome. ``verify`` only ever
answers yes/no; the reason is logged and counted, never returned to callers
that might echo it to a client.
"""
from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from pydantic import BaseModel

from ..config import FRESHNESS_WINDOW_SEC
from ..errors import KeyDecodeError, PaysignError, VerificationMismatch
from ..obs.prom import observe_verification
from ..protocol.canonical import SigningContext, build_canonical_string
from ..protocol.timestamps import check_freshness
from ..utils.logging import get_logger
from .keycodec import to_usable_public_key

log = get_logger()


class VerificationOutcome(BaseModel):
    verified: bool
    failure_reason: Optional[str] = None


def _check_signature(ctx: SigningContext, signature_b64: str, public_key: str) -> None:
    message = build_canonical_string(ctx)
    pk = to_usable_public_key(public_key)
    try:
        sig = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise KeyDecodeError("signature is not valid Base64") from e
    try:
        pk.verify(sig, message.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature as e:
        raise VerificationMismatch("signature does not match canonical string") from e


def verify_outcome(
    ctx: SigningContext,
    signature_b64: str,
    public_key: str,
    now: datetime,
    window_sec: int = FRESHNESS_WINDOW_SEC,
) -> VerificationOutcome:
    try:
        check_freshness(ctx.timestamp, now, window_sec)
        _check_signature(ctx, signature_b64, public_key)
    except PaysignError as e:
        outcome = VerificationOutcome(verified=False, failure_reason=e.reason)
    except Exception as e:  # malformed body bytes, unexpected key types, primitive errors
        log.debug(f"verification error {type(e).__name__}: {e}")
        outcome = VerificationOutcome(verified=False, failure_reason="decode_failure")
    else:
        outcome = VerificationOutcome(verified=True)
    if not outcome.verified:
        log.warning(
            f"signature rejected client={ctx.client_key} {ctx.http_method} {ctx.path} "
            f"reason={outcome.failure_reason}"
        )
    observe_verification(verified=outcome.verified, reason=outcome.failure_reason)
    return outcome


def verify(
    ctx: SigningContext,
    signature_b64: str,
    public_key: str,
    now: datetime,
    window_sec: int = FRESHNESS_WINDOW_SEC,
) -> bool:
    return verify_outcome(ctx, signature_b64, public_key, now, window_sec).verified


__all__ = ["VerificationOutcome", "verify", "verify_outcome"]

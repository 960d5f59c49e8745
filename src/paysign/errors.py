"""Error taxonomy for request signing.

Signing-side errors propagate to the caller. Verification-side errors carry a
short ``reason`` label; the verifier collapses them to ``False`` and only the
label reaches logs and metrics.
"""
from __future__ import annotations


class PaysignError(Exception):
    """Base class for all paysign errors."""

    reason = "error"


class KeyDecodeError(PaysignError):
    """Key material is not valid Base64, DER or PEM, or is not an RSA key."""

    reason = "decode_failure"


class SigningError(PaysignError):
    """The signing primitive (or the key feeding it) failed."""

    reason = "signing_failure"


class TimestampError(PaysignError):
    reason = "timestamp_error"


class TimestampFormatError(TimestampError):
    """Timestamp does not match strict ISO-8601 UTC (``...Z``)."""

    reason = "malformed_timestamp"


class TimestampExpiredError(TimestampError):
    """Timestamp lies outside the freshness window (past or future)."""

    reason = "stale_timestamp"


class VerificationMismatch(PaysignError):
    """Inputs are well formed but the signature does not validate."""

    reason = "signature_mismatch"


class ConfigError(PaysignError):
    reason = "config_error"


class PartnerApiError(PaysignError):
    """Non-2xx (or transport) failure talking to the partner API."""

    reason = "partner_api_error"

    def __init__(self, message: str, status_code: int | None = None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


__all__ = [
    "PaysignError",
    "KeyDecodeError",
    "SigningError",
    "TimestampError",
    "TimestampFormatError",
    "TimestampExpiredError",
    "VerificationMismatch",
    "ConfigError",
    "PartnerApiError",
]

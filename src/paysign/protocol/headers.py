from __future__ import annotations

from typing import Dict

CLIENT_KEY_HEADER = "X-CLIENT-KEY"
TIMESTAMP_HEADER = "X-TIMESTAMP"
SIGNATURE_HEADER = "X-SIGNATURE"
AUTHORIZATION_HEADER = "Authorization"


def signed_headers(timestamp: str, signature: str) -> Dict[str, str]:
    return {SIGNATURE_HEADER: signature, TIMESTAMP_HEADER: timestamp}


def bearer(token: str) -> Dict[str, str]:
    return {AUTHORIZATION_HEADER: f"Bearer {token}"}


def parse_bearer(value: str | None) -> str | None:
    if not value:
        return None
    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

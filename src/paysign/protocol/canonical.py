"""Canonical string construction for partner request signatures.

Two forms exist:
  bodiless (access token):  {method}:{path}:{timestamp}:{client_key}
  bodied (transactions):    {method}:{path}:{body}:{timestamp}:{client_key}

The body segment is the exact wire string. Structured bodies are serialized as
compact JSON in insertion order; signer and verifier must agree byte for byte,
so callers crossing a process boundary should sign and send the same string
(see ``stringify_body``).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

SEPARATOR = ":"


@dataclass(frozen=True)
class SigningContext:
    http_method: str
    path: str
    timestamp: str
    client_key: str
    body: Any = None

    @property
    def has_body(self) -> bool:
        return self.body is not None


def stringify_body(body: Any) -> str:
    if isinstance(body, str):
        return body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8")
    # Same output as JSON.stringify for str/int/bool/null/object/array payloads
    # NaN/Infinity raise ValueError instead of emitting non-JSON tokens
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def build_canonical_string(ctx: SigningContext) -> str:
    parts = [ctx.http_method, ctx.path]
    if ctx.has_body:
        parts.append(stringify_body(ctx.body))
    parts.extend([ctx.timestamp, ctx.client_key])
    return SEPARATOR.join(parts)


__all__ = ["SigningContext", "stringify_body", "build_canonical_string"]

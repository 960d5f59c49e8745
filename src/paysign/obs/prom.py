"""Prometheus instrumentation for request signing.

Labels stay low-cardinality: signature kind, verification result/reason and
partner endpoint name. Failure reasons are only ever exposed here and in logs.
"""
from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

REGISTRY = CollectorRegistry()

SIGNATURES = Counter(
    "paysign_signatures_total",
    "Signatures produced, by canonical form.",
    ["kind"],
    registry=REGISTRY,
)
VERIFICATIONS = Counter(
    "paysign_verifications_total",
    "Signature verifications by result and diagnostic reason.",
    ["result", "reason"],
    registry=REGISTRY,
)
PARTNER_REQUESTS = Counter(
    "paysign_partner_requests_total",
    "Outbound partner API calls by endpoint and HTTP status.",
    ["endpoint", "status"],
    registry=REGISTRY,
)


def observe_signature(*, bodied: bool):
    SIGNATURES.labels(kind="bodied" if bodied else "bodiless").inc()


def observe_verification(*, verified: bool, reason: str | None):
    VERIFICATIONS.labels(result="ok" if verified else "fail", reason=reason or "none").inc()


def observe_partner_request(*, endpoint: str, status: int | str):
    PARTNER_REQUESTS.labels(endpoint=endpoint, status=str(status)).inc()


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST

import json
from datetime import datetime, timedelta, timezone

from starlette.testclient import TestClient

from paysign.crypto.sign import sign
from paysign.protocol.canonical import SigningContext
from paysign.protocol.timestamps import generate_timestamp
from paysign.sandbox.app import create_sandbox_app

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _client(keys):
    app = create_sandbox_app({"ABG": keys.public_pem}, clock=lambda: NOW)
    return TestClient(app)


def _token_headers(keys, ts=None):
    ts = ts or generate_timestamp(NOW)
    ctx = SigningContext("GET", "/api/auth/access-token", ts, "ABG")
    return {"X-CLIENT-KEY": "ABG", "X-TIMESTAMP": ts, "X-SIGNATURE": sign(ctx, keys.private_der_b64)}


def test_missing_signature_headers(keys):
    r = _client(keys).get("/api/auth/access-token", headers={"X-CLIENT-KEY": "ABG"})
    assert r.status_code == 401
    assert r.json() == {"error": "signature required"}


def test_unknown_client(keys):
    headers = {**_token_headers(keys), "X-CLIENT-KEY": "XYZ"}
    r = _client(keys).get("/api/auth/access-token", headers=headers)
    assert r.status_code == 401


def test_token_issue_with_valid_signature(keys):
    r = _client(keys).get("/api/auth/access-token", headers=_token_headers(keys))
    assert r.status_code == 200
    assert r.json()["result"]["token"]


def test_stale_signature_does_not_leak_reason(keys):
    old = generate_timestamp(NOW - timedelta(hours=2))
    r = _client(keys).get("/api/auth/access-token", headers=_token_headers(keys, old))
    assert r.status_code == 401
    assert r.json() == {"error": "invalid signature"}
    assert "stale" not in r.text


def _signed_post(keys, client, body: str, signed_body: str | None = None):
    token = client.get("/api/auth/access-token", headers=_token_headers(keys)).json()["result"]["token"]
    ts = generate_timestamp(NOW)
    ctx = SigningContext("POST", "/api/transaction/transfer-inquiry", ts, "ABG",
                         body=body if signed_body is None else signed_body)
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {token}",
        "X-CLIENT-KEY": "ABG",
        "X-TIMESTAMP": ts,
        "X-SIGNATURE": sign(ctx, keys.private_der_b64),
    }
    return client.post("/api/transaction/transfer-inquiry", headers=headers, content=body.encode())


def test_raw_body_verified_byte_for_byte(keys):
    client = _client(keys)
    # Whitespace is part of the signed bytes; the sandbox never re-serializes
    body = '{ "destinationAccountNumber": "5432154321",  "amount": 10000 }'
    r = _signed_post(keys, client, body)
    assert r.status_code == 200
    assert r.json()["result"]["destinationAccNumber"] == "5432154321"


def test_body_changed_after_signing(keys):
    client = _client(keys)
    signed = json.dumps({"destinationAccountNumber": "5432154321", "amount": 10000})
    sent = json.dumps({"destinationAccountNumber": "5432154321", "amount": 99999})
    r = _signed_post(keys, client, sent, signed_body=signed)
    assert r.status_code == 401


def test_bearer_required_on_unsigned_routes(keys):
    r = _client(keys).get("/api/info/channels", headers={"X-CLIENT-KEY": "ABG"})
    assert r.status_code == 401
    r = _client(keys).get("/api/info/channels", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_metrics_exposed(keys):
    client = _client(keys)
    client.get("/api/auth/access-token", headers=_token_headers(keys))
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "paysign_verifications_total" in r.text
    assert "paysign_signatures_total" in r.text

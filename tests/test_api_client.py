from datetime import datetime, timedelta, timezone

import pytest
from starlette.testclient import TestClient

from paysign.client.api_client import PartnerApiClient
from paysign.config import Environment, LOCAL_FORWARDED_FOR
from paysign.errors import PartnerApiError, SigningError
from paysign.sandbox.app import create_sandbox_app

BASE_URL = "http://testserver/api"
INQUIRY = {
    "destinationAccountNumber": "5432154321",
    "destinationBankCode": "014",
    "amount": 10000,
    "channelId": "CH-FRP-01",
}


def _env(private_key: str, key: str = "dev") -> Environment:
    return Environment(key=key, name="sandbox", base_url=BASE_URL, partner_id="ABG",
                       private_key=private_key, merchant_id="A4QZ")


@pytest.fixture
def sandbox(keys):
    return create_sandbox_app({"ABG": keys.public_der_b64})


@pytest.fixture
def client(keys, sandbox):
    return PartnerApiClient(_env(keys.private_der_b64), http=TestClient(sandbox, base_url=BASE_URL))


def test_signed_path_includes_base_prefix(client):
    assert client.signed_path("/auth/access-token") == "/api/auth/access-token"


def test_access_token_exchange_and_cache(client):
    assert client.access_token is None
    token = client.get_access_token()
    assert token and client.access_token == token
    # refresh replaces the cached token
    assert client.get_access_token() != token


def test_token_fetched_lazily(client):
    channels = client.get_channels()
    assert channels["result"][0]["id"] == "CH-FRP-01"
    token = client.access_token
    assert token
    client.get_banks()
    assert client.access_token == token


def test_transfer_inquiry_generates_reference(client):
    res = client.transfer_inquiry(INQUIRY)
    assert res["success"] is True
    assert res["partnerReferenceNo"].startswith("PAT-")
    assert res["result"]["destinationAccNumber"] == "5432154321"


def test_transfer_inquiry_keeps_caller_reference(client):
    res = client.transfer_inquiry({**INQUIRY, "partnerReferenceNo": "ts-out-07"})
    assert res["partnerReferenceNo"] == "ts-out-07"


def test_transfer_out_then_status(client):
    inquiry = client.transfer_inquiry(INQUIRY)
    out = client.transfer_out({
        **INQUIRY,
        "destinationAccountName": "SANDBOX ACCOUNT",
        "inquiryId": inquiry["result"]["inquiryId"],
        "partnerReferenceNo": inquiry["partnerReferenceNo"],
    })
    tx = out["result"]
    assert tx["merchantId"] == "A4QZ"
    status = client.get_transaction_status(tx["transactionId"])
    assert status["result"]["statusTrx"] == "SUCCESS"
    assert status["result"]["partnerReferenceNo"] == inquiry["partnerReferenceNo"]


def test_wallet_endpoints(client):
    assert client.get_balance()["result"]["merchantId"] == "A4QZ"
    assert client.get_journal(limit=5)["meta"] == {"currentPage": 1, "limit": 5}


def test_transfer_out_requires_fields(client):
    with pytest.raises(ValueError):
        client.transfer_out(INQUIRY)


def test_unregistered_key_is_rejected(other_keys, sandbox):
    c = PartnerApiClient(_env(other_keys.private_der_b64), http=TestClient(sandbox, base_url=BASE_URL))
    with pytest.raises(PartnerApiError) as ei:
        c.get_access_token()
    assert ei.value.status_code == 401
    assert ei.value.payload == {"error": "invalid signature"}


def test_client_clock_skew_is_rejected(keys, sandbox):
    skewed = lambda: datetime.now(timezone.utc) - timedelta(minutes=31)
    c = PartnerApiClient(_env(keys.private_der_b64), http=TestClient(sandbox, base_url=BASE_URL), clock=skewed)
    with pytest.raises(PartnerApiError) as ei:
        c.get_access_token()
    assert ei.value.status_code == 401


def test_missing_private_key_fails_before_sending(sandbox):
    c = PartnerApiClient(_env(""), http=TestClient(sandbox, base_url=BASE_URL))
    with pytest.raises(SigningError):
        c.get_access_token()


def test_default_headers(keys, sandbox):
    http = TestClient(sandbox, base_url=BASE_URL)
    PartnerApiClient(_env(keys.private_der_b64, key="local"), http=http)
    assert http.headers["X-CLIENT-KEY"] == "ABG"
    assert http.headers["x-forwarded-for"] == LOCAL_FORWARDED_FOR
    http2 = TestClient(sandbox, base_url=BASE_URL)
    PartnerApiClient(_env(keys.private_der_b64, key="dev"), http=http2)
    assert "x-forwarded-for" not in http2.headers

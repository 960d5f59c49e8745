"""In-process partner sandbox.

Mirrors the partner API closely enough for end-to-end runs of the client:
signed token issue, bearer-checked transaction endpoints, static reference
data. Tokens live in memory for the lifetime of the app.
"""
from __future__ import annotations

import json
import os
import secrets
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from ..config import SANDBOX_CLIENT_KEYS, SANDBOX_TOKEN_TTL_SEC
from ..obs.prom import prometheus_latest
from ..protocol.headers import AUTHORIZATION_HEADER, CLIENT_KEY_HEADER, parse_bearer
from .middleware import SignatureMiddleware

CHANNELS = [
    {"id": "CH-FRP-01", "name": "FRP", "label": "Fast Retail Payout", "type": "DISBURSEMENT",
     "createdAt": "2024-01-01T00:00:00.000Z", "availablePayMethod": ["BANK_TRANSFER"]},
]
BANKS = [
    {"id": 1, "bankName": "BANK CENTRAL ASIA", "bankCode": "014"},
    {"id": 2, "bankName": "BANK MANDIRI", "bankCode": "008"},
]


def load_client_keys(path: str = SANDBOX_CLIENT_KEYS) -> Dict[str, str]:
    """client key -> public key (Base64 DER SPKI or PEM)."""
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class TokenBook:
    def __init__(self, ttl_sec: int, clock: Callable[[], datetime]):
        self.ttl = timedelta(seconds=ttl_sec)
        self.clock = clock
        self._tokens: Dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def _prune(self, now: datetime) -> None:
        expired = [t for t, (_, expiry) in self._tokens.items() if expiry < now]
        for t in expired:
            del self._tokens[t]

    def issue(self, client_key: str) -> str:
        token = secrets.token_urlsafe(32)
        now = self.clock()
        with self._lock:
            self._prune(now)
            self._tokens[token] = (client_key, now + self.ttl)
        return token

    def owner(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        with self._lock:
            entry = self._tokens.get(token)
        if entry is None or entry[1] < self.clock():
            return None
        return entry[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


class TransactionBook:
    def __init__(self):
        self._items: Dict[str, Dict] = {}
        self._lock = threading.Lock()

    def add(self, body: Dict) -> Dict:
        tx = {**body, "transactionId": str(uuid.uuid4())}
        with self._lock:
            self._items[tx["transactionId"]] = tx
        return tx

    def get(self, transaction_id: str) -> Optional[Dict]:
        with self._lock:
            return self._items.get(transaction_id)


def _ok(result) -> Dict:
    return {"success": True, "message": "Success", "result": result}


def create_sandbox_app(
    client_keys: Optional[Dict[str, str]] = None,
    clock: Optional[Callable[[], datetime]] = None,
    prefix: str = "/api",
    token_ttl_sec: int = SANDBOX_TOKEN_TTL_SEC,
) -> FastAPI:
    clock = clock or (lambda: datetime.now(timezone.utc))
    keys = load_client_keys() if client_keys is None else client_keys
    tokens = TokenBook(token_ttl_sec, clock)
    transactions = TransactionBook()

    sandbox = FastAPI(title="paysign partner sandbox")
    sandbox.add_middleware(
        SignatureMiddleware,
        client_keys=keys,
        signed_routes={
            f"{prefix}/auth/access-token",
            f"{prefix}/transaction/transfer-inquiry",
            f"{prefix}/transaction/transfer-out",
        },
        clock=clock,
    )

    def authorized(request: Request) -> Optional[str]:
        owner = tokens.owner(parse_bearer(request.headers.get(AUTHORIZATION_HEADER)))
        if owner is None or owner != request.headers.get(CLIENT_KEY_HEADER, owner):
            return None
        return owner

    def unauthorized() -> JSONResponse:
        return JSONResponse({"success": False, "message": "Unauthorized"}, status_code=401)

    @sandbox.get(f"{prefix}/auth/access-token")
    def access_token(request: Request):
        client_key = request.headers[CLIENT_KEY_HEADER]
        return _ok({"token": tokens.issue(client_key), "expiresIn": token_ttl_sec})

    @sandbox.get(f"{prefix}/info/channels")
    def channels(request: Request):
        if authorized(request) is None:
            return unauthorized()
        return _ok(CHANNELS)

    @sandbox.get(f"{prefix}/info/banks")
    def banks(request: Request):
        if authorized(request) is None:
            return unauthorized()
        return _ok(BANKS)

    @sandbox.post(f"{prefix}/transaction/transfer-inquiry")
    def transfer_inquiry(request: Request, body: dict):
        if authorized(request) is None:
            return unauthorized()
        return _ok({
            "inquiryId": f"INQ-{uuid.uuid4()}",
            "destinationAccNumber": body.get("destinationAccountNumber"),
            "destinationAccName": "SANDBOX ACCOUNT",
            "desc": "Inquiry success",
        })

    @sandbox.post(f"{prefix}/transaction/transfer-out")
    def transfer_out(request: Request, body: dict):
        if authorized(request) is None:
            return unauthorized()
        return _ok(transactions.add(body))

    @sandbox.get(f"{prefix}/transaction/status/{{transaction_id}}")
    def transaction_status(request: Request, transaction_id: str):
        if authorized(request) is None:
            return unauthorized()
        tx = transactions.get(transaction_id)
        if tx is None:
            return JSONResponse({"success": False, "message": "Transaction not found"}, status_code=404)
        return _ok({
            "statusTrx": "SUCCESS",
            "id": transaction_id,
            "merchantId": tx.get("merchantId"),
            "amount": str(tx.get("amount")),
            "type": "DISBURSEMENT",
            "destinationAccountNumber": tx.get("destinationAccountNumber"),
            "destinationBankCode": tx.get("destinationBankCode"),
            "partnerReferenceNo": tx.get("partnerReferenceNo"),
            "channelId": tx.get("channelId"),
            "walletId": "W-SANDBOX",
        })

    @sandbox.get(f"{prefix}/wallet/balance")
    def balance(request: Request, merchantId: str = ""):
        if authorized(request) is None:
            return unauthorized()
        return _ok({"id": "W-SANDBOX", "merchantId": merchantId, "balance": "1000000",
                    "name": "Sandbox Wallet", "channelId": "CH-FRP-01"})

    @sandbox.get(f"{prefix}/wallet/journal")
    def journal(request: Request, limit: int = 10, page: int = 1):
        if authorized(request) is None:
            return unauthorized()
        return {"result": [], "meta": {"currentPage": page, "limit": limit}}

    @sandbox.get("/metrics")
    def metrics():
        data, content_type = prometheus_latest()
        return Response(data, media_type=content_type)

    return sandbox

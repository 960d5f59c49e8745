"""Signing HTTP client for the partner disbursement API.

Every call carries ``X-CLIENT-KEY``. The access-token call and payload-bearing
transaction calls are additionally signed (``X-TIMESTAMP`` + ``X-SIGNATURE``);
everything else rides on the cached bearer token.

Signed paths include the base URL's path prefix: with base URL
``https://host/api`` the token call is signed as ``GET:/api/auth/access-token``.
"""
from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit

import httpx

from ..config import HTTP_TIMEOUT_SEC, LOCAL_FORWARDED_FOR, Environment
from ..crypto.sign import sign
from ..errors import PartnerApiError
from ..obs.prom import observe_partner_request
from ..protocol.canonical import SigningContext, stringify_body
from ..protocol.headers import CLIENT_KEY_HEADER, bearer, signed_headers
from ..protocol.reference import generate_reference_no
from ..protocol.timestamps import generate_timestamp
from ..utils.logging import get_logger
from .models import JournalQuery, TransferInquiryRequest, TransferOutRequest

log = get_logger()

TOKEN_ROUTE = "/auth/access-token"
TRANSFER_INQUIRY_ROUTE = "/transaction/transfer-inquiry"
TRANSFER_OUT_ROUTE = "/transaction/transfer-out"


class PartnerApiClient:
    def __init__(
        self,
        environment: Environment,
        http: Optional[httpx.Client] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timeout: float = HTTP_TIMEOUT_SEC,
    ):
        self.environment = environment
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=environment.base_url, timeout=timeout)
        self._http.headers.update(self._default_headers())
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._path_prefix = urlsplit(environment.base_url).path.rstrip("/")
        self._token: Optional[str] = None
        self._token_lock = threading.Lock()

    def _default_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            CLIENT_KEY_HEADER: self.environment.partner_id,
        }
        if self.environment.key == "local":
            headers["x-forwarded-for"] = LOCAL_FORWARDED_FOR
        return headers

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "PartnerApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def access_token(self) -> Optional[str]:
        with self._token_lock:
            return self._token

    def signed_path(self, route: str) -> str:
        return f"{self._path_prefix}{route}"

    def _sign(self, method: str, route: str, body: Optional[str] = None) -> Dict[str, str]:
        timestamp = generate_timestamp(self._clock())
        ctx = SigningContext(
            http_method=method,
            path=self.signed_path(route),
            timestamp=timestamp,
            client_key=self.environment.partner_id,
            body=body,
        )
        return signed_headers(timestamp, sign(ctx, self.environment.private_key))

    def _send(self, endpoint: str, method: str, route: str, **kwargs) -> Any:
        try:
            resp = self._http.request(method, route.lstrip("/"), **kwargs)
        except httpx.RequestError as e:
            observe_partner_request(endpoint=endpoint, status="error")
            log.error(f"API Error: {endpoint} {type(e).__name__}: {e}")
            raise PartnerApiError(f"{endpoint}: {e}") from e
        observe_partner_request(endpoint=endpoint, status=resp.status_code)
        try:
            payload = resp.json()
        except ValueError:
            payload = resp.text
        if resp.is_error:
            log.error(f"API Error: {endpoint} status={resp.status_code} body={payload}")
            raise PartnerApiError(
                f"{endpoint} failed with HTTP {resp.status_code}",
                status_code=resp.status_code,
                payload=payload,
            )
        return payload

    def _fetch_token(self) -> str:
        headers = self._sign("GET", TOKEN_ROUTE)
        payload = self._send("access_token", "GET", TOKEN_ROUTE, headers=headers)
        try:
            return payload["result"]["token"]
        except (KeyError, TypeError) as e:
            raise PartnerApiError("access token missing from response", payload=payload) from e

    def get_access_token(self) -> str:
        """Always performs the signed token exchange and refreshes the cache."""
        token = self._fetch_token()
        with self._token_lock:
            self._token = token
        return token

    def _ensure_token(self) -> str:
        with self._token_lock:
            if self._token is None:
                self._token = self._fetch_token()
            return self._token

    def _authorized_get(self, endpoint: str, route: str, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = bearer(self._ensure_token())
        return self._send(endpoint, "GET", route, headers=headers, params=params)

    def _signed_post(self, endpoint: str, route: str, payload: Dict[str, Any]) -> Any:
        token = self._ensure_token()
        # Serialize once; the signed string is exactly what goes on the wire
        body = stringify_body(payload)
        headers = {**bearer(token), **self._sign("POST", route, body)}
        return self._send(endpoint, "POST", route, headers=headers, content=body.encode("utf-8"))

    def get_channels(self) -> Any:
        return self._authorized_get("channels", "/info/channels")

    def get_banks(self) -> Any:
        return self._authorized_get("banks", "/info/banks")

    def get_transaction_status(self, transaction_id: str) -> Any:
        return self._authorized_get("transaction_status", f"/transaction/status/{transaction_id}")

    def get_balance(self) -> Any:
        return self._authorized_get(
            "balance", "/wallet/balance", params={"merchantId": self.environment.merchant_id}
        )

    def get_journal(self, **params: Any) -> Any:
        query = JournalQuery(**params).model_dump(exclude_none=True)
        return self._authorized_get("journal", "/wallet/journal", params=query)

    def transfer_inquiry(self, data: Dict[str, Any]) -> Dict[str, Any]:
        req = TransferInquiryRequest(**data)
        reference_no = req.partnerReferenceNo or generate_reference_no()
        payload = req.model_dump(exclude_none=True)
        payload["merchantId"] = self.environment.merchant_id
        payload["partnerReferenceNo"] = reference_no
        result = self._signed_post("transfer_inquiry", TRANSFER_INQUIRY_ROUTE, payload)
        if isinstance(result, dict):
            return {**result, "partnerReferenceNo": reference_no}
        return {"result": result, "partnerReferenceNo": reference_no}

    def transfer_out(self, data: Dict[str, Any]) -> Any:
        req = TransferOutRequest(**data)
        payload = req.model_dump()
        payload["merchantId"] = self.environment.merchant_id
        return self._signed_post("transfer_out", TRANSFER_OUT_ROUTE, payload)


__all__ = ["PartnerApiClient", "TOKEN_ROUTE", "TRANSFER_INQUIRY_ROUTE", "TRANSFER_OUT_ROUTE"]

"""Signature enforcement middleware for the partner sandbox."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from ..crypto.verify import verify_outcome
from ..protocol.canonical import SigningContext
from ..protocol.headers import CLIENT_KEY_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER
from ..utils.logging import get_logger

log = get_logger()


class SignatureMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        client_keys: Dict[str, str],
        signed_routes: Iterable[str],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(app)
        self.client_keys = client_keys
        self.signed_routes = set(signed_routes)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def dispatch(self, request, call_next):
        route = request.url.path
        if route not in self.signed_routes:
            return await call_next(request)

        client_key = request.headers.get(CLIENT_KEY_HEADER)
        timestamp = request.headers.get(TIMESTAMP_HEADER)
        signature = request.headers.get(SIGNATURE_HEADER)
        if not (client_key and timestamp and signature):
            request.state.signature_result = {"verified": False, "failure_reason": "missing_signature"}
            return JSONResponse({"error": "signature required"}, status_code=401)

        public_key = self.client_keys.get(client_key)
        if not public_key:
            log.warning(f"signature rejected: unknown client {client_key!r} on {route}")
            request.state.signature_result = {"verified": False, "failure_reason": "unknown_client"}
            return JSONResponse({"error": "invalid signature"}, status_code=401)

        # Bodied form only when a payload was actually sent; raw bytes, never re-serialized
        body = await request.body()
        ctx = SigningContext(
            http_method=request.method.upper(),
            path=route,
            timestamp=timestamp,
            client_key=client_key,
            body=body if body else None,
        )
        outcome = verify_outcome(ctx, signature, public_key, self.clock())
        request.state.signature_result = outcome.model_dump()
        if not outcome.verified:
            # Reason stays server-side
            return JSONResponse({"error": "invalid signature"}, status_code=401)
        return await call_next(request)

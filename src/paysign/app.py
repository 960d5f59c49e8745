from typing import Any, Callable, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .client.api_client import PartnerApiClient
from .config import ENVIRONMENT_OPTIONS, Environment, require_environment
from .errors import ConfigError, PaysignError
from .utils.logging import get_logger

app = FastAPI(title="paysign partner console API")
log = get_logger()

# CORS (dev)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Swappable so tests can route the client at an in-process sandbox
app.state.client_factory = PartnerApiClient


def _resolve(body: Dict[str, Any]):
    key = body.get("environmentKey")
    if not key:
        return None, JSONResponse({"error": "Environment key is required"}, status_code=400)
    try:
        return require_environment(key), None
    except ConfigError:
        return None, JSONResponse({"error": "Invalid environment key"}, status_code=400)


def _call(request: Request, env: Environment, label: str, fn: Callable[[PartnerApiClient], Any]):
    factory = request.app.state.client_factory
    try:
        with factory(env) as client:
            return fn(client)
    except PaysignError as e:
        log.error(f"{label} API Error: {e}")
        payload = getattr(e, "payload", None)
        details = payload if payload is not None else str(e)
        return JSONResponse({"error": f"Failed to {label}", "details": details}, status_code=500)
    except ValueError as e:  # payload validation
        log.error(f"{label} API Error: {e}")
        return JSONResponse({"error": f"Failed to {label}", "details": str(e)}, status_code=500)


def _params(body: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in body.items() if k != "environmentKey"}


@app.get("/__health")
async def health():
    return {"status": "ok"}


@app.get("/api/info/environments")
async def environment_options():
    return ENVIRONMENT_OPTIONS


@app.post("/api/auth/token")
def auth_token(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    result = _call(request, env, "get access token", lambda c: c.get_access_token())
    if isinstance(result, JSONResponse):
        return result
    return {"success": True, "token": result}


@app.post("/api/info/environment")
def environment_info(body: dict):
    env, err = _resolve(body)
    if err:
        return err
    # partner/merchant ids only; the private key never leaves the server
    return {"success": True, "result": env.public_view()}


@app.post("/api/info/channels")
def channels(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    return _call(request, env, "get channels", lambda c: c.get_channels())


@app.post("/api/info/banks")
def banks(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    return _call(request, env, "get banks", lambda c: c.get_banks())


@app.post("/api/wallet/balance")
def balance(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    return _call(request, env, "get balance", lambda c: c.get_balance())


@app.post("/api/wallet/journal")
def journal(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    params = _params(body)
    return _call(request, env, "get journal", lambda c: c.get_journal(**params))


@app.post("/api/transaction/inquiry")
def transfer_inquiry(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    log.info(
        f"Transfer Inquiry - environment={env.name} partnerId={env.partner_id} "
        f"privateKeyExists={bool(env.private_key)} privateKeyLength={len(env.private_key)}"
    )
    data = _params(body)
    return _call(request, env, "process transfer inquiry", lambda c: c.transfer_inquiry(data))


@app.post("/api/transaction/transfer-out")
def transfer_out(request: Request, body: dict):
    env, err = _resolve(body)
    if err:
        return err
    data = _params(body)
    return _call(request, env, "process transfer out", lambda c: c.transfer_out(data))


@app.post("/api/transaction/status")
def transaction_status(request: Request, body: dict):
    transaction_id = body.get("transactionId")
    if not body.get("environmentKey") or not transaction_id:
        return JSONResponse({"error": "Environment key and transaction ID required"}, status_code=400)
    env, err = _resolve(body)
    if err:
        return err
    return _call(request, env, "get transaction status", lambda c: c.get_transaction_status(transaction_id))

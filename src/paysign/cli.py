from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from .crypto.sign import sign
from .crypto.verify import verify_outcome
from .errors import SigningError
from .protocol.canonical import SigningContext, build_canonical_string
from .protocol.reference import generate_reference_no
from .protocol.timestamps import generate_timestamp


def _body(args: argparse.Namespace) -> str | None:
    if args.body_file:
        return Path(args.body_file).read_text(encoding="utf-8")
    return args.body


def cmd_sign(args: argparse.Namespace) -> int:
    private_key = os.getenv(args.key_env, "")
    if not private_key:
        print(f"missing private key: ${args.key_env} is empty", file=sys.stderr)
        return 2
    ctx = SigningContext(
        http_method=args.method.upper(),
        path=args.path,
        timestamp=args.timestamp or generate_timestamp(),
        client_key=args.client_key,
        body=_body(args),
    )
    try:
        signature = sign(ctx, private_key)
    except SigningError as e:
        print(f"signing failed: {e}", file=sys.stderr)
        return 1
    out = {"timestamp": ctx.timestamp, "clientKey": ctx.client_key, "signature": signature}
    if args.show_base:
        out["canonical"] = build_canonical_string(ctx)
    print(json.dumps(out))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    public_key = Path(args.public_key_file).read_text(encoding="utf-8") if args.public_key_file else args.public_key
    ctx = SigningContext(
        http_method=args.method.upper(),
        path=args.path,
        timestamp=args.timestamp,
        client_key=args.client_key,
        body=_body(args),
    )
    outcome = verify_outcome(ctx, args.signature, public_key, datetime.now(timezone.utc))
    # Local diagnostics tool: the reason is shown to the operator
    print(json.dumps(outcome.model_dump()))
    return 0 if outcome.verified else 1


def cmd_refno(args: argparse.Namespace) -> int:
    print(generate_reference_no())
    return 0


def _add_request_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--method", required=True)
    p.add_argument("--path", required=True)
    p.add_argument("--client-key", dest="client_key", required=True)
    p.add_argument("--body", help="exact request body string (bodied form)")
    p.add_argument("--body-file", dest="body_file")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("paysign")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_sign = sub.add_parser("sign")
    _add_request_args(p_sign)
    p_sign.add_argument("--timestamp", help="defaults to now")
    p_sign.add_argument("--key-env", dest="key_env", default="LOCAL_PRIVATE_KEY",
                        help="environment variable holding the Base64 DER private key")
    p_sign.add_argument("--show-base", dest="show_base", action="store_true")
    p_sign.set_defaults(func=cmd_sign)

    p_ver = sub.add_parser("verify")
    _add_request_args(p_ver)
    p_ver.add_argument("--timestamp", required=True)
    p_ver.add_argument("--signature", required=True)
    key = p_ver.add_mutually_exclusive_group(required=True)
    key.add_argument("--public-key", dest="public_key")
    key.add_argument("--public-key-file", dest="public_key_file")
    p_ver.set_defaults(func=cmd_verify)

    p_ref = sub.add_parser("refno")
    p_ref.set_defaults(func=cmd_refno)

    args = p.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

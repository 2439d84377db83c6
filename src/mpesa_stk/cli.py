"""
Command-line interface for sending STK push requests.
"""

from __future__ import annotations

import argparse
import logging
from typing import Iterable, Optional, Sequence, Tuple

import requests

from .api import create_stk_client
from .core.client import PaymentSubmissionResult
from .core.config import load_mpesa_config
from .core.errors import ConfigurationError, MpesaError, ValidationError
from .server import serve


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpesa-stk",
        description="Send Lipa na M-Pesa Online (STK push) payment requests",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing MPESA_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    push = commands.add_parser("push", help="Prompt a phone for a single payment")
    push.add_argument("--phone", required=True, help="Payer MSISDN, e.g. 254708374149")
    push.add_argument("--amount", required=True, help="Amount to charge in KES")
    push.add_argument("--account-reference", help="Reference shown on the payer's phone")
    push.add_argument("--description", help="Transaction description")
    push.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each provider call",
    )

    server = commands.add_parser("serve", help="Expose POST /send over HTTP")
    server.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    server.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 3000)")
    return parser


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    session: Optional[requests.Session] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    try:
        config = load_mpesa_config(env_file=args.env_file, overrides=overrides)
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_stk_client(config=config, session=session or requests.Session())

    if args.command == "serve":
        serve(client, host=args.host, port=args.port)
        return 0

    try:
        result = client.push(
            args.phone,
            args.amount,
            account_reference=args.account_reference,
            transaction_description=args.description,
            timeout=args.timeout,
        )
    except ValidationError as exc:
        logging.error("Invalid payment request: %s", exc)
        return 2
    except MpesaError as exc:
        logging.error("STK push failed: %s (%s)", exc, exc.detail)
        return 1

    return _handle_result(result)


def _handle_result(result: PaymentSubmissionResult) -> int:
    if not result.accepted:
        logging.error(
            "Provider rejected the request with code %s: %s",
            result.response_code,
            result.response_description,
        )
        return 1

    logging.info(
        "Payment prompt sent. CheckoutRequestID: %s (%s)",
        result.checkout_request_id,
        result.customer_message,
    )
    return 0


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()

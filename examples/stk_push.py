"""
Minimal script that uses the public API to prompt a phone for payment.
"""

from __future__ import annotations

import argparse
import logging

from mpesa_stk import ConfigurationError, MpesaError, create_stk_client, load_mpesa_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send an STK push using the SDK API")
    parser.add_argument("phone", help="Payer MSISDN, e.g. 254708374149")
    parser.add_argument("amount", help="Amount in KES")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing MPESA_* settings",
    )
    parser.add_argument(
        "--production",
        action="store_true",
        help="Use the production Daraja host instead of the sandbox",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    try:
        config = load_mpesa_config(
            env_file=args.env_file,
            environment="production" if args.production else None,
        )
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    client = create_stk_client(config=config)
    try:
        result = client.push(args.phone, args.amount)
    except MpesaError as exc:
        logging.error("STK push failed: %s", exc.to_dict())
        return 1

    logging.info("Provider answered %s: %s", result.response_code, result.response_description)
    return 0 if result.accepted else 1


if __name__ == "__main__":
    raise SystemExit(main())

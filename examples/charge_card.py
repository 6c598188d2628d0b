"""
Minimal script that uses the public API to charge a tokenised card and,
optionally, look the transaction up again.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, Tuple

from paidyet_payments import (
    Approved,
    AuthFailure,
    Card,
    ConfigError,
    Customer,
    Query,
    Sale,
    ValidationFailure,
    create_dispatcher,
    load_gateway_config,
)


def _override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    return key, val


def _build_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Charge a card through PaidYET using the SDK API")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing PAIDYET_* settings",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    parser.add_argument("--sandbox", action="store_true", help="Use the sandbox API host")
    parser.add_argument("--amount", default="1.00", help="Charge amount (default: 1.00)")
    parser.add_argument("--currency", default="USD")
    parser.add_argument("--card-token", required=True, help="Token from the hosted card form")
    parser.add_argument("--order-id", required=True)
    parser.add_argument("--email", default="")
    parser.add_argument(
        "--lookup",
        action="store_true",
        help="Query the transaction after an approval",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    overrides = _build_overrides(args.set or ())
    try:
        config = load_gateway_config(
            env_file=args.env_file,
            overrides=overrides,
            environment="sandbox" if args.sandbox else None,
        )
        sale = Sale(
            amount=args.amount,
            currency=args.currency,
            card=Card(args.card_token),
            order_id=args.order_id,
            customer=Customer(email=args.email) if args.email else None,
        )
    except (ConfigError, ValidationFailure) as exc:
        logging.error("Invalid input: %s", exc)
        return 1

    dispatcher = create_dispatcher(config=config)
    credentials = config.credentials()
    logging.info("Charging %s %s on %s", sale.amount, sale.currency, config.api_base_url)

    try:
        outcome = dispatcher.dispatch(sale, credentials)
        if not isinstance(outcome, Approved):
            logging.error("Charge not approved: %s", outcome)
            return 1
        logging.info("Charge approved. Transaction id: %s", outcome.transaction_id)

        if args.lookup and outcome.transaction_id:
            # second call reuses the cached bearer token
            details = dispatcher.dispatch(Query(outcome.transaction_id), credentials)
            logging.info("Transaction status: %s", getattr(details, "status", details))
    except AuthFailure as exc:
        logging.error("Authentication failed: %s", exc)
        return 1
    finally:
        dispatcher.token_store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

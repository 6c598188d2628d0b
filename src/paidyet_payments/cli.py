"""
Command-line interface for exercising the PaidYET gateway helpers.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import requests

from .api import create_dispatcher
from .core.config import load_gateway_config
from .core.environment import build_environment
from .core.errors import AuthFailure, ConfigError, ValidationFailure
from .core.intents import (
    BillingAddress,
    Capture,
    Card,
    Customer,
    Query,
    Refund,
    Sale,
    TransactionIntent,
    Void,
)
from .core.outcomes import Approved, Declined, Outcome
from .core.webhooks import WebhookVerifier


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
        prog="paidyet-payments",
        description="Run a single PaidYET gateway operation",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing PAIDYET_* settings (default: .env)",
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

    sale = commands.add_parser("sale", help="Charge a tokenised card")
    sale.add_argument("--amount", required=True)
    sale.add_argument("--currency", default="USD")
    sale.add_argument("--card-token", required=True)
    sale.add_argument("--order-id", required=True)
    sale.add_argument("--email", default="")
    sale.add_argument("--first-name", default="")
    sale.add_argument("--last-name", default="")
    sale.add_argument("--address", default="")
    sale.add_argument("--city", default="")
    sale.add_argument("--state", default="")
    sale.add_argument("--postal", default="")
    sale.add_argument(
        "--auth-only",
        action="store_true",
        help="Authorize without capturing (type=auth)",
    )

    refund = commands.add_parser("refund", help="Refund a settled transaction")
    refund.add_argument("--transaction-id", required=True)
    refund.add_argument("--amount", required=True)
    refund.add_argument("--order-id")

    capture = commands.add_parser("capture", help="Capture an authorization")
    capture.add_argument("--transaction-id", required=True)
    capture.add_argument("--amount")

    void = commands.add_parser("void", help="Void an unsettled transaction")
    void.add_argument("--transaction-id", required=True)

    query = commands.add_parser("query", help="Fetch a transaction")
    query.add_argument("--transaction-id", required=True)

    webhook = commands.add_parser(
        "verify-webhook", help="Check a stored webhook body against its signature"
    )
    webhook.add_argument("--body-file", required=True, type=Path)
    webhook.add_argument("--signature", required=True)
    webhook.add_argument(
        "--secret",
        help="Shared secret (default: PAIDYET_WEBHOOK_SECRET)",
    )
    return parser


def _build_intent(args: argparse.Namespace) -> TransactionIntent:
    if args.command == "sale":
        billing = None
        if any((args.address, args.city, args.state, args.postal)):
            billing = BillingAddress(args.address, args.city, args.state, args.postal)
        customer = None
        if any((args.first_name, args.last_name, args.email)):
            customer = Customer(args.first_name, args.last_name, args.email)
        return Sale(
            amount=args.amount,
            currency=args.currency,
            card=Card(args.card_token),
            order_id=args.order_id,
            billing=billing,
            customer=customer,
            transaction_type="auth" if args.auth_only else None,
        )
    if args.command == "refund":
        return Refund(transaction_id=args.transaction_id, amount=args.amount, order_id=args.order_id)
    if args.command == "capture":
        return Capture(transaction_id=args.transaction_id, amount=args.amount)
    if args.command == "void":
        return Void(transaction_id=args.transaction_id)
    return Query(transaction_id=args.transaction_id)


def _verify_webhook(args: argparse.Namespace, overrides: dict[str, str]) -> int:
    secret = args.secret
    if secret is None:
        snapshot = build_environment(env_file=args.env_file, overrides=overrides)
        secret = snapshot.get("PAIDYET_WEBHOOK_SECRET")
    try:
        body = args.body_file.read_bytes()
    except OSError as exc:
        logging.error("Cannot read webhook body: %s", exc)
        return 1
    if WebhookVerifier(secret).verify(body, args.signature):
        logging.info("Webhook signature is valid")
        return 0
    logging.error("Webhook signature is invalid")
    return 1


def _handle_outcome(outcome: Outcome) -> int:
    if isinstance(outcome, Approved):
        logging.info(
            "Gateway approved transaction %s with status %s",
            outcome.transaction_id,
            outcome.status,
        )
        return 0
    if isinstance(outcome, Declined):
        logging.error("Declined (%s): %s", outcome.reason_code or outcome.status, outcome.message)
        return 1
    logging.error("%s: %s", type(outcome).__name__, outcome.cause)
    return 1


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)
    overrides = _collect_overrides(args.set or ())

    if args.command == "verify-webhook":
        return _verify_webhook(args, overrides)

    try:
        config = load_gateway_config(env_file=args.env_file, overrides=overrides)
        intent = _build_intent(args)
    except (ConfigError, ValidationFailure) as exc:
        logging.error("Invalid input: %s", exc)
        return 1

    dispatcher = create_dispatcher(config=config, session=requests.Session())
    try:
        outcome = dispatcher.dispatch(intent, config.credentials())
    except ValidationFailure as exc:
        logging.error("Invalid transaction: %s", exc)
        return 1
    except AuthFailure as exc:
        logging.error("Authentication failed: %s", exc)
        return 1
    finally:
        dispatcher.token_store.close()

    return _handle_outcome(outcome)


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()

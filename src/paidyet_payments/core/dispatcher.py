"""
Turns a transaction intent into a single classified gateway call.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Dict, Optional

from .client import GatewayClient, GatewayResponse
from .errors import TokenWaitTimeout, TransportFailure, ValidationFailure
from .intents import (
    Capture,
    Query,
    Refund,
    Sale,
    TransactionIntent,
    Void,
    operation_for,
    to_minor_units,
)
from .outcomes import Approved, Declined, FatalFailure, Outcome, TransientFailure
from .payloads import build_payload
from .retry import RetryPolicy
from .tokens import TokenStore
from .types import MerchantCredentials, Operation

__all__ = [
    "APPROVED_STATUSES",
    "DECLINE_STATUSES",
    "SUPPORTED_SALE_TYPES",
    "TransactionDispatcher",
    "classify_response",
    "validate_intent",
]

APPROVED_STATUSES = frozenset({"approved", "accepted"})
DECLINE_STATUSES = frozenset({"declined", "error", "failed", "rejected"})
SUPPORTED_SALE_TYPES = frozenset({"sale", "auth"})

_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")

DEFAULT_MESSAGES: Dict[Operation, str] = {
    Operation.SALE: "Transaction declined. Please try a different payment method.",
    Operation.REFUND: "Refund failed. Please contact support.",
    Operation.CAPTURE: "Capture failed. Please verify the authorization is still valid.",
    Operation.VOID: "Void failed. Transaction may have already settled.",
    Operation.QUERY: "Transaction not found.",
}


def _require_id(value: Optional[str], field_name: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationFailure(f"{field_name} is required")
    if any(ch in str(value) for ch in "/?#") or any(ch.isspace() for ch in str(value)):
        raise ValidationFailure(f"{field_name} contains characters not allowed in a path")


def _check_amount(amount: Any, currency: str) -> None:
    if amount < 0:
        raise ValidationFailure(f"amount must not be negative, got {amount}")
    to_minor_units(amount, currency)


def validate_intent(intent: TransactionIntent) -> None:
    """Raise :class:`ValidationFailure` if ``intent`` cannot be sent as-is."""
    if isinstance(intent, Sale):
        if not _CURRENCY_RE.match(intent.currency or ""):
            raise ValidationFailure(f"currency must be a 3-letter code, got '{intent.currency}'")
        _check_amount(intent.amount, intent.currency)
        if intent.card is None or not intent.card.token or not intent.card.token.strip():
            raise ValidationFailure("card token is required")
        if not intent.order_id or not intent.order_id.strip():
            raise ValidationFailure("order_id is required")
        if (
            intent.transaction_type is not None
            and intent.transaction_type not in SUPPORTED_SALE_TYPES
        ):
            raise ValidationFailure(
                f"transaction_type must be one of {sorted(SUPPORTED_SALE_TYPES)}"
            )
    elif isinstance(intent, Refund):
        _require_id(intent.transaction_id, "transaction_id")
        _check_amount(intent.amount, intent.currency)
    elif isinstance(intent, Capture):
        _require_id(intent.transaction_id, "transaction_id")
        if intent.amount is not None:
            _check_amount(intent.amount, intent.currency)
    elif isinstance(intent, (Void, Query)):
        _require_id(intent.transaction_id, "transaction_id")
    else:
        raise ValidationFailure(f"Unsupported transaction intent {type(intent).__name__}")


def _error_details(body: Dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    error = body.get("error")
    code = None
    message = None
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
    elif isinstance(error, str) and error:
        message = error
    message = message or body.get("message")
    return (str(code) if code is not None else None), message


def classify_response(
    operation: Operation,
    response: GatewayResponse,
    *,
    transaction_id: Optional[str] = None,
) -> Outcome:
    """
    Map a non-401, non-5xx gateway response onto an outcome.
    """
    body = response.body
    status = str(body.get("status") or "").lower()
    code, message = _error_details(body)
    returned_id = body.get("id") or transaction_id

    if 200 <= response.status_code < 300:
        if operation is Operation.QUERY:
            return Approved(transaction_id=returned_id, status=status or "unknown", raw=body)
        if operation is Operation.SALE:
            if status in APPROVED_STATUSES:
                return Approved(transaction_id=returned_id, status=status, raw=body)
        elif status not in DECLINE_STATUSES:
            return Approved(transaction_id=returned_id, status=status or "success", raw=body)
        return Declined(
            status=status or "declined",
            reason_code=code,
            message=message or DEFAULT_MESSAGES[operation],
            raw=body,
        )

    return Declined(
        status=status or "error",
        reason_code=code or f"http_{response.status_code}",
        message=message or DEFAULT_MESSAGES[operation],
        raw=body,
    )


class TransactionDispatcher:
    """
    Validates, builds, authenticates, sends and classifies one transaction.

    The dispatcher keeps no state of its own; the token cache lives in the
    injected :class:`TokenStore`.
    """

    def __init__(
        self,
        token_store: TokenStore,
        gateway: GatewayClient,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        platform: str = "shopify",
        default_transaction_type: str = "sale",
        token_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.token_store = token_store
        self.gateway = gateway
        self.retry_policy = retry_policy or RetryPolicy()
        self.platform = platform
        self.default_transaction_type = default_transaction_type
        self.token_timeout = token_timeout
        self._sleep = sleep

    def dispatch(
        self, intent: TransactionIntent, credentials: MerchantCredentials
    ) -> Outcome:
        validate_intent(intent)
        operation = operation_for(intent)
        payload = build_payload(
            intent,
            platform=self.platform,
            merchant_uuid=credentials.merchant_uuid,
            default_type=self.default_transaction_type,
        )
        transaction_id = getattr(intent, "transaction_id", None)

        try:
            token = self.token_store.get_token(credentials, timeout=self.token_timeout)
        except TokenWaitTimeout as exc:
            logging.error("%s for merchant %s not sent: %s", operation.value, credentials.merchant_id, exc)
            return TransientFailure(str(exc))

        attempt = 1
        token_refreshed = False
        while True:
            try:
                response = self.gateway.call(
                    operation,
                    token,
                    payload,
                    environment=credentials.environment,
                    transaction_id=transaction_id,
                )
                if response.server_error:
                    raise TransportFailure(
                        f"Gateway answered {response.status_code}",
                        status_code=response.status_code,
                    )
            except TransportFailure as failure:
                if self.retry_policy.should_retry(operation, failure, attempt):
                    logging.warning(
                        "%s attempt %s/%s failed (%s); retrying in %ss",
                        operation.value,
                        attempt,
                        self.retry_policy.attempts,
                        failure,
                        self.retry_policy.delay,
                    )
                    self._sleep(self.retry_policy.delay)
                    attempt += 1
                    continue
                if self.retry_policy.is_eligible(operation, failure):
                    logging.error(
                        "%s failed after %s attempts: %s", operation.value, attempt, failure
                    )
                    return FatalFailure(
                        f"{operation.value} failed after {attempt} attempts: {failure}"
                    )
                logging.error(
                    "%s may have reached the gateway; not retrying: %s",
                    operation.value,
                    failure,
                )
                return TransientFailure(str(failure))

            if response.token_rejected:
                if token_refreshed:
                    logging.error(
                        "Gateway rejected a freshly issued token for merchant %s",
                        credentials.merchant_id,
                    )
                    return FatalFailure("Gateway rejected the bearer token twice")
                logging.warning(
                    "Bearer token rejected for merchant %s; refreshing",
                    credentials.merchant_id,
                )
                token_refreshed = True
                try:
                    token = self.token_store.refresh(
                        credentials, rejected=token, timeout=self.token_timeout
                    )
                except TokenWaitTimeout as exc:
                    return TransientFailure(str(exc))
                continue

            outcome = classify_response(operation, response, transaction_id=transaction_id)
            if isinstance(outcome, Declined):
                logging.info(
                    "%s declined with status %s (%s)",
                    operation.value,
                    outcome.status,
                    outcome.reason_code,
                )
            else:
                logging.info("%s approved: %s", operation.value, outcome.transaction_id)
            return outcome

"""
Authenticity checks for inbound PaidYET webhook notifications.
"""

from __future__ import annotations

import enum
import hmac
import json
import logging
from dataclasses import dataclass, field
from hashlib import sha256
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "SIGNATURE_HEADER",
    "WebhookEnvelope",
    "WebhookEvent",
    "WebhookResponse",
    "WebhookVerifier",
    "compute_signature",
    "handle_webhook",
    "verify_signature",
]

SIGNATURE_HEADER = "X-PaidYET-Signature"
_SIGNATURE_PREFIX = "sha256="


class WebhookEvent(enum.Enum):
    TRANSACTION_APPROVED = "transaction.approved"
    TRANSACTION_DECLINED = "transaction.declined"
    TRANSACTION_REFUNDED = "transaction.refunded"
    TRANSACTION_VOIDED = "transaction.voided"
    BATCH_CLOSED = "batch.closed"

    @classmethod
    def lookup(cls, value: str) -> Optional["WebhookEvent"]:
        try:
            return cls(value)
        except ValueError:
            return None


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, sha256).hexdigest()


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: Optional[str]) -> bool:
    """
    Check ``signature_header`` against an HMAC-SHA256 of the exact body bytes.

    Without a secret every notification is trusted. With a secret, a missing
    header fails verification.
    """
    if not secret:
        return True
    if not signature_header:
        return False
    provided = signature_header.strip()
    if provided.lower().startswith(_SIGNATURE_PREFIX):
        provided = provided[len(_SIGNATURE_PREFIX):]
    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(provided.lower().encode("utf-8"), expected.encode("utf-8"))


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


@dataclass(frozen=True)
class WebhookEnvelope:
    raw_body: bytes
    signature_header: str
    event_type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def event(self) -> Optional[WebhookEvent]:
        return WebhookEvent.lookup(self.event_type)

    @classmethod
    def parse(cls, raw_body: bytes, headers: Mapping[str, str]) -> "WebhookEnvelope":
        """
        Raises :class:`ValueError` when the body is not a JSON object.
        """
        payload = json.loads(raw_body.decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Webhook body must be a JSON object")
        return cls(
            raw_body=raw_body,
            signature_header=_header(headers, SIGNATURE_HEADER),
            event_type=str(payload.get("event_type") or ""),
            payload=payload,
        )


class WebhookVerifier:
    def __init__(self, secret: Optional[str] = None) -> None:
        self._secret = secret or None
        self._warned = False

    @property
    def enforcing(self) -> bool:
        return self._secret is not None

    def verify(self, raw_body: bytes, signature_header: Optional[str]) -> bool:
        if self._secret is None and not self._warned:
            logging.warning("No webhook secret configured; accepting unsigned notifications")
            self._warned = True
        return verify_signature(raw_body, signature_header, self._secret)

    def verify_envelope(self, envelope: WebhookEnvelope) -> bool:
        return self.verify(envelope.raw_body, envelope.signature_header)


@dataclass(frozen=True)
class WebhookResponse:
    status_code: int
    body: Dict[str, Any]


def handle_webhook(
    raw_body: bytes,
    headers: Mapping[str, str],
    verifier: WebhookVerifier,
) -> WebhookResponse:
    """
    Verify and acknowledge a notification. Forwarding the event to business
    logic is left to the caller.
    """
    if not verifier.verify(raw_body, _header(headers, SIGNATURE_HEADER)):
        logging.error("Invalid webhook signature")
        return WebhookResponse(401, {"error": "Invalid signature"})

    try:
        envelope = WebhookEnvelope.parse(raw_body, headers)
    except (UnicodeDecodeError, ValueError) as exc:
        logging.error("Unreadable webhook payload: %s", exc)
        return WebhookResponse(400, {"error": "Invalid payload"})

    event = envelope.event
    if event is WebhookEvent.BATCH_CLOSED:
        logging.info("Batch closed: %s", envelope.payload.get("batch_id"))
    elif event is not None:
        logging.info("%s: %s", event.value, envelope.payload.get("transaction_id"))
    else:
        logging.info("Unhandled event type: %s", envelope.event_type or "<missing>")
    return WebhookResponse(200, {"received": True})

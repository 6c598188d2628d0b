"""
Helpers for constructing the JSON payloads sent to the PaidYET gateway.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import ValidationFailure
from .intents import (
    BillingAddress,
    Capture,
    Customer,
    Query,
    Refund,
    Sale,
    TransactionIntent,
    Void,
    format_amount,
)

__all__ = [
    "PLATFORM_FIELD",
    "ORDER_ID_FIELD",
    "build_custom_fields",
    "build_payload",
    "build_sale_payload",
]

PLATFORM_FIELD = "platform"
ORDER_ID_FIELD = "order_id"


def build_custom_fields(
    platform: str,
    *,
    order_id: Optional[str] = None,
    extra: Iterable[Tuple[str, str]] = (),
) -> List[Dict[str, str]]:
    """
    The platform field always comes first, followed by ``order_id`` when
    given. Extra fields reusing either reserved key are dropped.
    """
    fields = [{"key": PLATFORM_FIELD, "value": platform}]
    reserved = {PLATFORM_FIELD}
    if order_id is not None:
        fields.append({"key": ORDER_ID_FIELD, "value": order_id})
        reserved.add(ORDER_ID_FIELD)
    for key, value in extra:
        if key in reserved:
            continue
        fields.append({"key": key, "value": value})
    return fields


def build_sale_payload(
    sale: Sale,
    *,
    platform: str,
    merchant_uuid: Optional[str] = None,
    default_type: str = "sale",
) -> Dict[str, Any]:
    billing = sale.billing or BillingAddress()
    customer = sale.customer or Customer()
    payload: Dict[str, Any] = {
        "type": sale.transaction_type or default_type,
        "amount": format_amount(sale.amount, sale.currency),
        "currency": sale.currency.upper(),
        "credit_card": {
            "token": sale.card.token,
            "billing_address": {
                "address": billing.address,
                "city": billing.city,
                "state": billing.state,
                "postal": billing.postal,
            },
            "name": customer.full_name,
            "email": customer.email,
        },
        "email": customer.email,
        "order_id": sale.order_id,
        "invoice": sale.order_id,
        "source": platform,
        "custom_fields": build_custom_fields(
            platform, order_id=sale.order_id, extra=sale.custom_fields
        ),
    }
    if merchant_uuid:
        payload["merchant_uuid"] = merchant_uuid
    return payload


def build_payload(
    intent: TransactionIntent,
    *,
    platform: str,
    merchant_uuid: Optional[str] = None,
    default_type: str = "sale",
) -> Dict[str, Any]:
    """
    Build the canonical request body for ``intent``.

    Query payloads are built for symmetry but travel as a GET without a body.
    """
    if isinstance(intent, Sale):
        return build_sale_payload(
            intent,
            platform=platform,
            merchant_uuid=merchant_uuid,
            default_type=default_type,
        )
    if isinstance(intent, Refund):
        payload: Dict[str, Any] = {
            "type": "refund",
            "amount": format_amount(intent.amount, intent.currency),
        }
        if intent.order_id is not None:
            payload["order_id"] = intent.order_id
        payload["custom_fields"] = build_custom_fields(platform)
        return payload
    if isinstance(intent, Capture):
        payload = {}
        if intent.amount is not None:
            payload["amount"] = format_amount(intent.amount, intent.currency)
        payload["custom_fields"] = build_custom_fields(platform)
        return payload
    if isinstance(intent, (Void, Query)):
        return {"custom_fields": build_custom_fields(platform)}
    raise ValidationFailure(f"Unsupported transaction intent {type(intent).__name__}")

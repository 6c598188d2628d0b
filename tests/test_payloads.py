from decimal import Decimal

import pytest

from paidyet_payments.core.errors import ValidationFailure
from paidyet_payments.core.intents import (
    BillingAddress,
    Capture,
    Card,
    Customer,
    Query,
    Refund,
    Sale,
    Void,
    format_amount,
    to_minor_units,
)
from paidyet_payments.core.payloads import build_payload


def _keys(payload):
    return [field["key"] for field in payload["custom_fields"]]


@pytest.mark.parametrize(
    "billing, customer",
    [
        (None, None),
        (BillingAddress("1 Main St", "Austin", "TX", "78701"), None),
        (None, Customer("Ada", "Lovelace", "ada@example.com")),
    ],
)
def test_sale_payload_carries_platform_and_order_fields_once(billing, customer) -> None:
    sale = Sale(
        amount="25",
        currency="usd",
        card=Card("card-tok"),
        order_id="1001",
        billing=billing,
        customer=customer,
    )

    payload = build_payload(sale, platform="shopify")

    assert _keys(payload).count("platform") == 1
    assert _keys(payload).count("order_id") == 1
    assert payload["custom_fields"][:2] == [
        {"key": "platform", "value": "shopify"},
        {"key": "order_id", "value": "1001"},
    ]
    assert payload["amount"] == "25.00"
    assert payload["currency"] == "USD"
    assert payload["order_id"] == payload["invoice"] == "1001"
    assert payload["source"] == "shopify"
    assert "merchant_uuid" not in payload


def test_sale_payload_drops_caller_fields_that_reuse_reserved_keys() -> None:
    sale = Sale(
        amount="1.50",
        currency="USD",
        card=Card("card-tok"),
        order_id="1001",
        custom_fields=[("platform", "woo"), ("order_id", "999"), ("channel", "pos")],
    )

    payload = build_payload(sale, platform="shopify", merchant_uuid="uuid-1")

    assert payload["custom_fields"] == [
        {"key": "platform", "value": "shopify"},
        {"key": "order_id", "value": "1001"},
        {"key": "channel", "value": "pos"},
    ]
    assert payload["merchant_uuid"] == "uuid-1"


def test_sale_payload_customer_and_billing_mapping() -> None:
    sale = Sale(
        amount="10",
        currency="USD",
        card=Card("card-tok"),
        order_id="7",
        billing=BillingAddress(address="1 Main St", postal="78701"),
        customer=Customer(first_name="Ada", email="ada@example.com"),
    )

    card = build_payload(sale, platform="shopify")["credit_card"]

    assert card["token"] == "card-tok"
    assert card["name"] == "Ada"
    assert card["email"] == "ada@example.com"
    assert card["billing_address"] == {
        "address": "1 Main St",
        "city": "",
        "state": "",
        "postal": "78701",
    }


def test_other_payloads_carry_platform_field() -> None:
    refund = build_payload(Refund("t-1", "3.5", order_id="7"), platform="shopify")
    capture = build_payload(Capture("t-1"), platform="shopify")
    void = build_payload(Void("t-1"), platform="shopify")
    query = build_payload(Query("t-1"), platform="shopify")

    assert refund == {
        "type": "refund",
        "amount": "3.50",
        "order_id": "7",
        "custom_fields": [{"key": "platform", "value": "shopify"}],
    }
    assert "amount" not in capture
    for payload in (capture, void, query):
        assert _keys(payload) == ["platform"]


def test_minor_unit_helpers() -> None:
    assert to_minor_units(Decimal("19.99"), "USD") == 1999
    assert to_minor_units(Decimal("500"), "JPY") == 500
    assert to_minor_units(Decimal("1.234"), "KWD") == 1234
    assert format_amount(Decimal("5"), "USD") == "5.00"
    assert format_amount(Decimal("5"), "JPY") == "5"
    with pytest.raises(ValidationFailure):
        to_minor_units(Decimal("0.001"), "USD")
    with pytest.raises(ValidationFailure):
        format_amount(Decimal("1E+27"), "USD")


def test_amount_strings_are_parsed_exactly() -> None:
    assert Sale(amount="0.10", currency="USD", card=Card("c"), order_id="1").amount == Decimal("0.10")
    with pytest.raises(ValidationFailure):
        Refund("t-1", "ten dollars")
    with pytest.raises(ValidationFailure):
        Refund("t-1", "NaN")

"""
Transaction intents: what a caller wants the gateway to do.

Amounts are held as :class:`decimal.Decimal`. Binary floats are refused at
construction because they cannot represent most cent values exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple, Union

from .errors import ValidationFailure
from .types import Operation

__all__ = [
    "BillingAddress",
    "Capture",
    "Card",
    "Customer",
    "Query",
    "Refund",
    "Sale",
    "TransactionIntent",
    "coerce_amount",
    "format_amount",
    "minor_unit_exponent",
    "operation_for",
    "to_minor_units",
]

_ZERO_DECIMAL_CURRENCIES = frozenset(
    {"CLP", "ISK", "JPY", "KRW", "UGX", "VND", "XAF", "XOF"}
)
_THREE_DECIMAL_CURRENCIES = frozenset({"BHD", "JOD", "KWD", "OMR", "TND"})


def minor_unit_exponent(currency: str) -> int:
    code = currency.strip().upper()
    if code in _ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in _THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def coerce_amount(value: Any, field_name: str = "amount") -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationFailure(
            f"{field_name} must be a Decimal, int or numeric string, not {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationFailure(
                f"{field_name} must be a valid decimal number, got '{value}'"
            ) from exc
    if not amount.is_finite():
        raise ValidationFailure(f"{field_name} must be finite, got '{value}'")
    return amount


def _quantize(amount: Decimal, currency: str) -> Decimal:
    # quantize signals InvalidOperation when the result needs more digits
    # than the context precision allows
    try:
        return amount.quantize(Decimal(1).scaleb(-minor_unit_exponent(currency)))
    except InvalidOperation as exc:
        raise ValidationFailure(
            f"Amount {amount} cannot be represented in {currency.upper()}"
        ) from exc


def to_minor_units(amount: Decimal, currency: str) -> int:
    quantized = _quantize(amount, currency)
    if quantized != amount:
        raise ValidationFailure(
            f"Amount {amount} has more precision than {currency.upper()} allows"
        )
    return int(quantized.scaleb(minor_unit_exponent(currency)))


def format_amount(amount: Decimal, currency: str) -> str:
    """Fixed-point wire representation, e.g. ``Decimal("5")`` -> ``"5.00"`` for USD."""
    return str(_quantize(amount, currency))


@dataclass(frozen=True)
class Card:
    """Tokenised card reference produced by the hosted payment form."""

    token: str

    def __repr__(self) -> str:
        return "Card(token=***)"


@dataclass(frozen=True)
class BillingAddress:
    address: str = ""
    city: str = ""
    state: str = ""
    postal: str = ""


@dataclass(frozen=True)
class Customer:
    first_name: str = ""
    last_name: str = ""
    email: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Sale:
    amount: Decimal
    currency: str
    card: Card
    order_id: str
    billing: Optional[BillingAddress] = None
    customer: Optional[Customer] = None
    transaction_type: Optional[str] = None
    custom_fields: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", coerce_amount(self.amount))
        object.__setattr__(self, "custom_fields", tuple(self.custom_fields))


@dataclass(frozen=True)
class Refund:
    transaction_id: str
    amount: Decimal
    order_id: Optional[str] = None
    currency: str = "USD"

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", coerce_amount(self.amount))


@dataclass(frozen=True)
class Capture:
    transaction_id: str
    amount: Optional[Decimal] = None
    currency: str = "USD"

    def __post_init__(self) -> None:
        if self.amount is not None:
            object.__setattr__(self, "amount", coerce_amount(self.amount))


@dataclass(frozen=True)
class Void:
    transaction_id: str


@dataclass(frozen=True)
class Query:
    transaction_id: str


TransactionIntent = Union[Sale, Refund, Capture, Void, Query]

_OPERATIONS = {
    Sale: Operation.SALE,
    Refund: Operation.REFUND,
    Capture: Operation.CAPTURE,
    Void: Operation.VOID,
    Query: Operation.QUERY,
}


def operation_for(intent: TransactionIntent) -> Operation:
    try:
        return _OPERATIONS[type(intent)]
    except KeyError as exc:
        raise ValidationFailure(
            f"Unsupported transaction intent {type(intent).__name__}"
        ) from exc

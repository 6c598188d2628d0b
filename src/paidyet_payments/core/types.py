"""
Value types identifying merchants, environments and cached bearer tokens.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import ConfigError

__all__ = [
    "CachedToken",
    "CredentialKey",
    "Environment",
    "IssuedToken",
    "MerchantCredentials",
    "Operation",
    "utc_now",
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Environment(enum.Enum):
    PRODUCTION = "production"
    SANDBOX = "sandbox"

    @classmethod
    def parse(cls, value: "str | Environment") -> "Environment":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value == text:
                return member
        raise ConfigError(
            f"PAIDYET_ENVIRONMENT must be 'production' or 'sandbox', got '{value}'"
        )

    @property
    def base_url(self) -> str:
        if self is Environment.SANDBOX:
            return "https://api.sandbox-paidyet.com/v3"
        return "https://api.paidyet.com/v3"

    @property
    def login_url(self) -> str:
        return f"{self.base_url}/login"


class Operation(enum.Enum):
    """Gateway operation families."""

    SALE = "sale"
    REFUND = "refund"
    CAPTURE = "capture"
    VOID = "void"
    QUERY = "query"


def _fingerprint(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class CredentialKey:
    """Cache key for a merchant credential set. Never holds the raw API key."""

    merchant_id: str
    api_key_fingerprint: str
    environment: Environment


@dataclass(frozen=True)
class MerchantCredentials:
    merchant_id: str
    api_key: str = field(repr=False)
    environment: Environment = Environment.PRODUCTION
    merchant_uuid: Optional[str] = None

    @property
    def cache_key(self) -> CredentialKey:
        return CredentialKey(
            merchant_id=self.merchant_id,
            api_key_fingerprint=_fingerprint(self.api_key),
            environment=self.environment,
        )


@dataclass(frozen=True)
class IssuedToken:
    """What a token issuer hands back after a successful login exchange."""

    token: str = field(repr=False)
    lifetime_seconds: int


@dataclass(frozen=True)
class CachedToken:
    value: str = field(repr=False)
    issued_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        if self.expires_at <= self.issued_at:
            raise ValueError("CachedToken.expires_at must be after issued_at")

    def is_usable(self, now: datetime, refresh_skew: timedelta) -> bool:
        return now < self.expires_at - refresh_skew

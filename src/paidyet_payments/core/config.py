"""
Configuration objects and helpers for the PaidYET gateway integration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

from .environment import build_environment
from .errors import ConfigError
from .tokens import MAX_TOKEN_LIFETIME_SECONDS
from .types import Environment, MerchantCredentials

__all__ = [
    "ConfigError",
    "ConfigParameters",
    "GatewayConfig",
    "load_gateway_config",
]

_PARAMETER_TO_ENV_KEY = {
    "merchant_id": "PAIDYET_MERCHANT_ID",
    "api_key": "PAIDYET_API_KEY",
    "environment": "PAIDYET_ENVIRONMENT",
    "merchant_uuid": "PAIDYET_MERCHANT_UUID",
    "base_url": "PAIDYET_BASE_URL",
    "timeout_seconds": "PAIDYET_TIMEOUT_SECONDS",
    "retry_attempts": "PAIDYET_RETRY_ATTEMPTS",
    "retry_delay_ms": "PAIDYET_RETRY_DELAY_MS",
    "token_refresh_skew_seconds": "PAIDYET_TOKEN_REFRESH_SKEW_SECONDS",
    "token_lifetime_seconds": "PAIDYET_TOKEN_LIFETIME_SECONDS",
    "transaction_type": "PAIDYET_TRANSACTION_TYPE",
    "platform": "PAIDYET_PLATFORM",
    "webhook_secret": "PAIDYET_WEBHOOK_SECRET",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Environment):
        return value.value
    return str(value)


@dataclass(frozen=True)
class ConfigParameters:
    """
    Keyword-argument mirror of the ``PAIDYET_*`` keys. Unset fields fall
    through to the environment.
    """

    merchant_id: Optional[str] = None
    api_key: Optional[str] = None
    environment: Optional[str | Environment] = None
    merchant_uuid: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: Optional[float | int | str] = None
    retry_attempts: Optional[int | str] = None
    retry_delay_ms: Optional[int | str] = None
    token_refresh_skew_seconds: Optional[int | str] = None
    token_lifetime_seconds: Optional[int | str] = None
    transaction_type: Optional[str] = None
    platform: Optional[str] = None
    webhook_secret: Optional[str] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _collect_parameter_overrides(
    parameters: Optional[ConfigParameters],
    explicit: Mapping[str, Any],
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    if parameters is not None:
        overrides.update(parameters.as_overrides())

    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown gateway parameter '{key}'") from exc
        overrides[env_key] = _stringify(value)
    return overrides


def _required(values: Mapping[str, str], key: str) -> str:
    value = (values.get(key) or "").strip()
    if not value:
        raise ConfigError(f"{key} must be provided")
    return value


def _optional(values: Mapping[str, str], key: str) -> Optional[str]:
    value = (values.get(key) or "").strip()
    return value or None


def _int(values: Mapping[str, str], key: str, default: int, *, minimum: int) -> int:
    raw = (values.get(key) or "").strip() or str(default)
    try:
        number = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from exc
    if number < minimum:
        raise ConfigError(f"{key} must be at least {minimum}, got {number}")
    return number


def _positive_float(values: Mapping[str, str], key: str, default: float) -> float:
    raw = (values.get(key) or "").strip() or str(default)
    try:
        number = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from exc
    if number <= 0:
        raise ConfigError(f"{key} must be greater than zero")
    return number


@dataclass(frozen=True)
class GatewayConfig:
    merchant_id: str
    api_key: str = field(repr=False)
    environment: Environment = Environment.PRODUCTION
    merchant_uuid: Optional[str] = None
    base_url: Optional[str] = None
    timeout_seconds: float = 30.0
    retry_attempts: int = 3
    retry_delay_ms: int = 1000
    token_refresh_skew_seconds: int = 300
    token_lifetime_seconds: int = 3600
    transaction_type: str = "sale"
    platform: str = "shopify"
    webhook_secret: Optional[str] = field(default=None, repr=False)

    @property
    def api_base_url(self) -> str:
        return self.base_url or self.environment.base_url

    @property
    def refresh_skew(self) -> timedelta:
        return timedelta(seconds=self.token_refresh_skew_seconds)

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    def credentials(self) -> MerchantCredentials:
        return MerchantCredentials(
            merchant_id=self.merchant_id,
            api_key=self.api_key,
            environment=self.environment,
            merchant_uuid=self.merchant_uuid,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "GatewayConfig":
        merchant_id = _required(values, "PAIDYET_MERCHANT_ID")
        api_key = _required(values, "PAIDYET_API_KEY")
        environment = Environment.parse(values.get("PAIDYET_ENVIRONMENT") or "production")

        base_url = _optional(values, "PAIDYET_BASE_URL")
        if base_url is not None:
            if not base_url.startswith(("https://", "http://")):
                raise ConfigError("PAIDYET_BASE_URL must be an http(s) URL")
            base_url = base_url.rstrip("/")

        skew = _int(values, "PAIDYET_TOKEN_REFRESH_SKEW_SECONDS", 300, minimum=0)
        lifetime = _int(values, "PAIDYET_TOKEN_LIFETIME_SECONDS", 3600, minimum=1)
        if lifetime <= skew:
            raise ConfigError(
                "PAIDYET_TOKEN_LIFETIME_SECONDS must exceed PAIDYET_TOKEN_REFRESH_SKEW_SECONDS"
            )
        if lifetime > MAX_TOKEN_LIFETIME_SECONDS:
            raise ConfigError(
                f"PAIDYET_TOKEN_LIFETIME_SECONDS must not exceed {MAX_TOKEN_LIFETIME_SECONDS}"
            )

        transaction_type = (values.get("PAIDYET_TRANSACTION_TYPE") or "sale").strip().lower()
        if transaction_type not in ("sale", "auth"):
            raise ConfigError(
                f"PAIDYET_TRANSACTION_TYPE must be 'sale' or 'auth', got '{transaction_type}'"
            )

        return cls(
            merchant_id=merchant_id,
            api_key=api_key,
            environment=environment,
            merchant_uuid=_optional(values, "PAIDYET_MERCHANT_UUID"),
            base_url=base_url,
            timeout_seconds=_positive_float(values, "PAIDYET_TIMEOUT_SECONDS", 30.0),
            retry_attempts=_int(values, "PAIDYET_RETRY_ATTEMPTS", 3, minimum=1),
            retry_delay_ms=_int(values, "PAIDYET_RETRY_DELAY_MS", 1000, minimum=0),
            token_refresh_skew_seconds=skew,
            token_lifetime_seconds=lifetime,
            transaction_type=transaction_type,
            platform=(values.get("PAIDYET_PLATFORM") or "shopify").strip(),
            webhook_secret=_optional(values, "PAIDYET_WEBHOOK_SECRET"),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[ConfigParameters] = None,
        **kwargs: Any,
    ) -> "GatewayConfig":
        parameter_overrides = _collect_parameter_overrides(parameters, kwargs)
        merged_overrides = dict(overrides or {})
        merged_overrides.update(parameter_overrides)

        snapshot = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(snapshot.variables)


def load_gateway_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ConfigParameters] = None,
    **kwargs: Any,
) -> GatewayConfig:
    """
    Convenience wrapper that mirrors :meth:`GatewayConfig.from_env`.

    Keyword arguments use the :class:`ConfigParameters` field names
    (``merchant_id=...``, ``retry_attempts=...``) and win over every other
    source.
    """
    return GatewayConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        **kwargs,
    )

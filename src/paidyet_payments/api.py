"""
Public, high-level helpers for wiring the PaidYET integration together.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from .core.client import PaidYetClient
from .core.config import ConfigParameters, GatewayConfig, load_gateway_config
from .core.dispatcher import TransactionDispatcher
from .core.intents import TransactionIntent
from .core.outcomes import Outcome
from .core.retry import RetryPolicy
from .core.tokens import HttpTokenIssuer, TokenStore
from .core.webhooks import WebhookVerifier

__all__ = [
    "create_dispatcher",
    "create_token_store",
    "create_webhook_verifier",
    "dispatch",
]


def _resolve_config(
    config: Optional[GatewayConfig],
    *,
    env_file: Optional[str],
    overrides: Optional[Mapping[str, str]],
    base: Optional[Mapping[str, str]],
    parameters: Optional[ConfigParameters],
    kwargs: Mapping[str, Any],
) -> GatewayConfig:
    if config is not None:
        extras = (overrides, base, parameters, *kwargs.values())
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built GatewayConfig or individual parameters, not both."
            )
        return config
    return load_gateway_config(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        **kwargs,
    )


def create_token_store(
    config: GatewayConfig,
    *,
    session: Optional[requests.Session] = None,
) -> TokenStore:
    issuer = HttpTokenIssuer(
        session,
        timeout=config.timeout_seconds,
        default_lifetime=config.token_lifetime_seconds,
        base_url=config.base_url,
    )
    return TokenStore(issuer, refresh_skew=config.refresh_skew)


def create_dispatcher(
    *,
    config: Optional[GatewayConfig] = None,
    session: Optional[requests.Session] = None,
    token_store: Optional[TokenStore] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ConfigParameters] = None,
    **kwargs: Any,
) -> TransactionDispatcher:
    """
    Construct a :class:`TransactionDispatcher`.

    Callers can either supply a ready-made :class:`GatewayConfig` or let the
    helper assemble one from environment data. Pass a shared ``token_store``
    when several dispatchers should reuse the same cache.
    """
    cfg = _resolve_config(
        config,
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        kwargs=kwargs,
    )
    session = session or requests.Session()
    return TransactionDispatcher(
        token_store or create_token_store(cfg, session=session),
        PaidYetClient(session=session, timeout=cfg.timeout_seconds, base_url=cfg.base_url),
        retry_policy=RetryPolicy(
            attempts=cfg.retry_attempts, delay=cfg.retry_delay_seconds
        ),
        platform=cfg.platform,
        default_transaction_type=cfg.transaction_type,
        token_timeout=cfg.timeout_seconds,
    )


def create_webhook_verifier(
    *,
    config: Optional[GatewayConfig] = None,
    secret: Optional[str] = None,
) -> WebhookVerifier:
    if config is not None and secret is not None:
        raise ValueError("Provide either a GatewayConfig or a secret, not both.")
    if config is not None:
        secret = config.webhook_secret
    return WebhookVerifier(secret)


def dispatch(
    intent: TransactionIntent,
    *,
    config: GatewayConfig,
    session: Optional[requests.Session] = None,
) -> Outcome:
    """
    One-shot helper that builds a dispatcher with a private token cache.

    Long-running processes should hold on to a dispatcher instead so the
    cached token is reused between calls.
    """
    dispatcher = create_dispatcher(config=config, session=session)
    try:
        return dispatcher.dispatch(intent, config.credentials())
    finally:
        dispatcher.token_store.close()

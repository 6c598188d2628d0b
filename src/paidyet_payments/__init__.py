"""
Public facade for the PaidYET payment gateway helpers.

The module re-exports the most useful pieces for integrators so they can
``from paidyet_payments import ...`` without navigating the package.
"""

from .api import create_dispatcher, create_token_store, create_webhook_verifier, dispatch
from .core import (
    Approved,
    AuthFailure,
    BillingAddress,
    Capture,
    Card,
    ConfigError,
    ConfigParameters,
    CredentialKey,
    Customer,
    Declined,
    Environment,
    FatalFailure,
    GatewayConfig,
    HttpTokenIssuer,
    MerchantCredentials,
    PaidYetClient,
    PaidYetError,
    Query,
    Refund,
    RetryPolicy,
    Sale,
    TokenStore,
    TokenWaitTimeout,
    TransactionDispatcher,
    TransientFailure,
    TransportFailure,
    ValidationFailure,
    Void,
    WebhookEnvelope,
    WebhookEvent,
    WebhookVerifier,
    handle_webhook,
    load_gateway_config,
    verify_signature,
)

__all__ = (
    "Approved",
    "AuthFailure",
    "BillingAddress",
    "Capture",
    "Card",
    "ConfigError",
    "ConfigParameters",
    "CredentialKey",
    "Customer",
    "Declined",
    "Environment",
    "FatalFailure",
    "GatewayConfig",
    "HttpTokenIssuer",
    "MerchantCredentials",
    "PaidYetClient",
    "PaidYetError",
    "Query",
    "Refund",
    "RetryPolicy",
    "Sale",
    "TokenStore",
    "TokenWaitTimeout",
    "TransactionDispatcher",
    "TransientFailure",
    "TransportFailure",
    "ValidationFailure",
    "Void",
    "WebhookEnvelope",
    "WebhookEvent",
    "WebhookVerifier",
    "create_dispatcher",
    "create_token_store",
    "create_webhook_verifier",
    "dispatch",
    "handle_webhook",
    "load_gateway_config",
    "verify_signature",
)

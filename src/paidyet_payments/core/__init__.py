"""
Core primitives: token lifecycle, transaction dispatch and webhook checks.
"""

from .client import GatewayClient, GatewayResponse, PaidYetClient
from .config import ConfigParameters, GatewayConfig, load_gateway_config
from .dispatcher import TransactionDispatcher, classify_response, validate_intent
from .environment import EnvironmentSnapshot, build_environment, load_env_file
from .errors import (
    AuthFailure,
    ConfigError,
    PaidYetError,
    TokenWaitTimeout,
    TransportFailure,
    ValidationFailure,
)
from .intents import (
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
from .outcomes import Approved, Declined, FatalFailure, Outcome, TransientFailure
from .payloads import build_payload
from .retry import RetryPolicy
from .tokens import HttpTokenIssuer, TokenIssuer, TokenStore
from .types import (
    CachedToken,
    CredentialKey,
    Environment,
    IssuedToken,
    MerchantCredentials,
    Operation,
)
from .webhooks import (
    WebhookEnvelope,
    WebhookEvent,
    WebhookResponse,
    WebhookVerifier,
    handle_webhook,
    verify_signature,
)

__all__ = [
    "Approved",
    "AuthFailure",
    "BillingAddress",
    "CachedToken",
    "Capture",
    "Card",
    "ConfigError",
    "ConfigParameters",
    "CredentialKey",
    "Customer",
    "Declined",
    "Environment",
    "EnvironmentSnapshot",
    "FatalFailure",
    "GatewayClient",
    "GatewayConfig",
    "GatewayResponse",
    "HttpTokenIssuer",
    "IssuedToken",
    "MerchantCredentials",
    "Operation",
    "Outcome",
    "PaidYetClient",
    "PaidYetError",
    "Query",
    "Refund",
    "RetryPolicy",
    "Sale",
    "TokenIssuer",
    "TokenStore",
    "TokenWaitTimeout",
    "TransactionDispatcher",
    "TransactionIntent",
    "TransientFailure",
    "TransportFailure",
    "ValidationFailure",
    "Void",
    "WebhookEnvelope",
    "WebhookEvent",
    "WebhookResponse",
    "WebhookVerifier",
    "build_environment",
    "build_payload",
    "classify_response",
    "handle_webhook",
    "load_env_file",
    "load_gateway_config",
    "validate_intent",
    "verify_signature",
]

from datetime import timedelta

import pytest

from paidyet_payments.api import create_dispatcher, create_webhook_verifier, dispatch
from paidyet_payments.core.config import ConfigParameters, GatewayConfig, load_gateway_config
from paidyet_payments.core.environment import build_environment, load_env_file, read_env_file
from paidyet_payments.core.errors import ConfigError
from paidyet_payments.core.intents import Card, Sale
from paidyet_payments.core.outcomes import Approved
from paidyet_payments.core.types import Environment

BASE = {"PAIDYET_MERCHANT_ID": "m-1", "PAIDYET_API_KEY": "key-1"}


def test_defaults() -> None:
    config = GatewayConfig.from_mapping(BASE)

    assert config.environment is Environment.PRODUCTION
    assert config.api_base_url == "https://api.paidyet.com/v3"
    assert config.timeout_seconds == 30.0
    assert config.retry_attempts == 3
    assert config.retry_delay_seconds == 1.0
    assert config.refresh_skew == timedelta(minutes=5)
    assert config.token_lifetime_seconds == 3600
    assert config.transaction_type == "sale"
    assert config.platform == "shopify"
    assert config.webhook_secret is None
    assert "key-1" not in repr(config)


def test_sandbox_and_credentials() -> None:
    config = GatewayConfig.from_mapping(
        {**BASE, "PAIDYET_ENVIRONMENT": "Sandbox", "PAIDYET_MERCHANT_UUID": "uuid-1"}
    )

    credentials = config.credentials()
    assert config.api_base_url == "https://api.sandbox-paidyet.com/v3"
    assert credentials.environment is Environment.SANDBOX
    assert credentials.merchant_uuid == "uuid-1"
    assert credentials.api_key == "key-1"


@pytest.mark.parametrize(
    "values",
    [
        {"PAIDYET_API_KEY": "key-1"},
        {"PAIDYET_MERCHANT_ID": "m-1"},
        {**BASE, "PAIDYET_ENVIRONMENT": "staging"},
        {**BASE, "PAIDYET_RETRY_ATTEMPTS": "0"},
        {**BASE, "PAIDYET_RETRY_DELAY_MS": "soon"},
        {**BASE, "PAIDYET_TIMEOUT_SECONDS": "0"},
        {**BASE, "PAIDYET_TOKEN_LIFETIME_SECONDS": "300"},
        {**BASE, "PAIDYET_TOKEN_LIFETIME_SECONDS": "86401"},
        {**BASE, "PAIDYET_TRANSACTION_TYPE": "credit"},
        {**BASE, "PAIDYET_BASE_URL": "ftp://example.com"},
    ],
)
def test_invalid_values_raise_config_error(values) -> None:
    with pytest.raises(ConfigError):
        GatewayConfig.from_mapping(values)


def test_env_file_layering(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# credentials\n"
        "export PAIDYET_MERCHANT_ID=file-merchant\n"
        'PAIDYET_API_KEY="file-key"\n'
        "PAIDYET_RETRY_ATTEMPTS=5\n"
        "PAIDYET_WEBHOOK_SECRET='s3cret'\n",
        encoding="utf-8",
    )

    config = load_gateway_config(
        env_file=str(env_file),
        base={"PAIDYET_MERCHANT_ID": "base-merchant"},
        overrides={"PAIDYET_RETRY_ATTEMPTS": "4"},
        retry_delay_ms=250,
    )

    assert config.merchant_id == "base-merchant"
    assert config.api_key == "file-key"
    assert config.retry_attempts == 4
    assert config.retry_delay_ms == 250
    assert config.webhook_secret == "s3cret"


def test_parameters_object_and_unknown_keywords() -> None:
    config = load_gateway_config(
        env_file=None,
        base={},
        parameters=ConfigParameters(
            merchant_id="m-9", api_key="k-9", environment=Environment.SANDBOX
        ),
    )
    assert config.environment is Environment.SANDBOX

    with pytest.raises(TypeError):
        load_gateway_config(env_file=None, base=BASE, colour="blue")


def test_missing_env_file_is_ignored(tmp_path) -> None:
    snapshot = build_environment(env_file=str(tmp_path / "absent.env"), base=BASE)
    assert snapshot.get("PAIDYET_MERCHANT_ID") == "m-1"
    assert snapshot.get("PAIDYET_ENVIRONMENT", "production") == "production"
    assert snapshot.with_prefix() == BASE


def test_load_env_file_keeps_existing_keys(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("PAIDYET_MERCHANT_ID=file\nPAIDYET_PLATFORM=woo\n", encoding="utf-8")
    target = {"PAIDYET_MERCHANT_ID": "existing"}

    merged = load_env_file(str(env_file), environ=target)

    assert merged == {"PAIDYET_MERCHANT_ID": "existing", "PAIDYET_PLATFORM": "woo"}


def test_factories_wire_config_through() -> None:
    config = GatewayConfig.from_mapping(
        {
            **BASE,
            "PAIDYET_RETRY_ATTEMPTS": "2",
            "PAIDYET_RETRY_DELAY_MS": "50",
            "PAIDYET_PLATFORM": "woo",
            "PAIDYET_WEBHOOK_SECRET": "s",
        }
    )

    dispatcher = create_dispatcher(config=config)
    try:
        assert dispatcher.retry_policy.attempts == 2
        assert dispatcher.retry_policy.delay == 0.05
        assert dispatcher.platform == "woo"
        assert dispatcher.token_store.refresh_skew == timedelta(minutes=5)
    finally:
        dispatcher.token_store.close()

    assert create_webhook_verifier(config=config).enforcing is True
    with pytest.raises(ValueError):
        create_dispatcher(config=config, overrides={"PAIDYET_PLATFORM": "x"})


class _GatewaySession:
    def __init__(self):
        self.logins = 0
        self.requests = []

    def post(self, url, json=None, timeout=None):
        self.logins += 1
        return _Response({"token": "tok-1"})

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.requests.append((method, url, headers))
        return _Response({"id": "txn-1", "status": "approved"})


class _Response:
    status_code = 200
    text = ""

    def __init__(self, body):
        self._body = body

    def json(self):
        return self._body


def test_one_shot_dispatch_uses_config_end_to_end() -> None:
    config = GatewayConfig.from_mapping({**BASE, "PAIDYET_ENVIRONMENT": "sandbox"})
    session = _GatewaySession()

    outcome = dispatch(
        Sale(amount="5", currency="USD", card=Card("c"), order_id="9"),
        config=config,
        session=session,
    )

    assert outcome == Approved(transaction_id="txn-1", status="approved")
    assert session.logins == 1
    assert session.requests == [
        (
            "POST",
            "https://api.sandbox-paidyet.com/v3/transaction",
            {"Authorization": "Bearer tok-1"},
        )
    ]


def test_read_env_file_skips_malformed_lines(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("=orphan\nno-equals\n\n# note\nA=1\nB = 'two words'\n", encoding="utf-8")

    assert read_env_file(str(env_file)) == {"A": "1", "B": "two words"}
    assert read_env_file(None) == {}

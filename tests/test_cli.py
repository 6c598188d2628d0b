import json

import pytest

from paidyet_payments import cli
from paidyet_payments.core.outcomes import Approved, Declined, FatalFailure
from paidyet_payments.core.webhooks import compute_signature


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("PAIDYET_MERCHANT_ID", "PAIDYET_API_KEY", "PAIDYET_WEBHOOK_SECRET"):
        monkeypatch.delenv(key, raising=False)


def test_verify_webhook_command(tmp_path) -> None:
    body = json.dumps({"event_type": "batch.closed", "batch_id": "b-1"}).encode()
    body_file = tmp_path / "event.json"
    body_file.write_bytes(body)
    missing_env = str(tmp_path / "none.env")
    signature = compute_signature(body, "s3cret")

    good = cli.run_cli(
        ["--env-file", missing_env, "verify-webhook", "--body-file", str(body_file),
         "--signature", signature, "--secret", "s3cret"]
    )
    bad = cli.run_cli(
        ["--env-file", missing_env, "verify-webhook", "--body-file", str(body_file),
         "--signature", "0" * 64, "--secret", "s3cret"]
    )

    assert good == 0
    assert bad == 1


def test_verify_webhook_reads_secret_from_overrides(tmp_path) -> None:
    body = b'{"event_type": "transaction.voided"}'
    body_file = tmp_path / "event.json"
    body_file.write_bytes(body)

    code = cli.run_cli(
        ["--env-file", str(tmp_path / "none.env"), "--set", "PAIDYET_WEBHOOK_SECRET=abc",
         "verify-webhook", "--body-file", str(body_file), "--signature", "deadbeef"]
    )

    assert code == 1


def test_missing_credentials_exit_nonzero(tmp_path) -> None:
    code = cli.run_cli(
        ["--env-file", str(tmp_path / "none.env"), "query", "--transaction-id", "txn-1"]
    )
    assert code == 1


def test_invalid_amount_exit_nonzero(tmp_path) -> None:
    code = cli.run_cli(
        ["--env-file", str(tmp_path / "none.env"),
         "--set", "PAIDYET_MERCHANT_ID=m-1", "--set", "PAIDYET_API_KEY=k-1",
         "refund", "--transaction-id", "txn-1", "--amount", "lots"]
    )
    assert code == 1


def test_build_intent_for_auth_only_sale() -> None:
    args = cli.build_parser().parse_args(
        ["sale", "--amount", "12.00", "--card-token", "tok", "--order-id", "55",
         "--email", "a@example.com", "--auth-only"]
    )

    sale = cli._build_intent(args)

    assert sale.transaction_type == "auth"
    assert sale.customer.email == "a@example.com"
    assert sale.billing is None


@pytest.mark.parametrize(
    "outcome, expected",
    [
        (Approved("txn-1", "approved"), 0),
        (Declined("declined", "05", "Card declined"), 1),
        (FatalFailure("retries exhausted"), 1),
    ],
)
def test_outcome_exit_codes(outcome, expected) -> None:
    assert cli._handle_outcome(outcome) == expected

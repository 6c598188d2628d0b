import pytest
import requests
from urllib3.exceptions import MaxRetryError, NewConnectionError

from paidyet_payments.core.client import PaidYetClient
from paidyet_payments.core.errors import TransportFailure
from paidyet_payments.core.types import Environment, Operation


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {"id": "txn-1", "status": "approved"})
        self.error = error
        self.requests = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.requests.append(
            {"method": method, "url": url, "json": json, "headers": headers, "timeout": timeout}
        )
        if self.error is not None:
            raise self.error
        return self.response


@pytest.mark.parametrize(
    "operation, method, path",
    [
        (Operation.SALE, "POST", "/transaction"),
        (Operation.REFUND, "POST", "/transaction/refund/txn-1"),
        (Operation.CAPTURE, "PUT", "/transaction/capture/txn-1"),
        (Operation.VOID, "PUT", "/transaction/void/txn-1"),
        (Operation.QUERY, "GET", "/transaction/txn-1"),
    ],
)
def test_routes(operation, method, path) -> None:
    session = FakeSession()
    client = PaidYetClient(session=session, timeout=7)

    client.call(
        operation,
        "tok-1",
        {"amount": "1.00"},
        environment=Environment.SANDBOX,
        transaction_id="txn-1",
    )

    sent = session.requests[0]
    assert sent["method"] == method
    assert sent["url"] == "https://api.sandbox-paidyet.com/v3" + path
    assert sent["headers"] == {"Authorization": "Bearer tok-1"}
    assert sent["timeout"] == 7
    if method == "GET":
        assert sent["json"] is None
    else:
        assert sent["json"] == {"amount": "1.00"}


def test_base_url_override_and_helpers() -> None:
    session = FakeSession()
    client = PaidYetClient(session=session, base_url="https://gateway.test/v3/")

    response = client.get_transaction("tok", "txn-9", environment=Environment.PRODUCTION)
    client.void("tok", "txn-9", environment=Environment.PRODUCTION)

    assert response.status_code == 200
    assert response.body["id"] == "txn-1"
    assert session.requests[0]["url"] == "https://gateway.test/v3/transaction/txn-9"
    assert session.requests[1]["json"] == {}


def test_missing_transaction_id_is_rejected() -> None:
    client = PaidYetClient(session=FakeSession())
    with pytest.raises(ValueError):
        client.call(Operation.VOID, "tok", {}, environment=Environment.SANDBOX)


def test_error_responses_are_returned_not_raised() -> None:
    session = FakeSession(FakeResponse(401, None, text="Unauthorized"))
    response = PaidYetClient(session=session).call(
        Operation.SALE, "tok", {}, environment=Environment.SANDBOX
    )

    assert response.token_rejected
    assert not response.server_error
    assert response.body == {}
    assert response.text == "Unauthorized"


def test_non_object_json_is_wrapped() -> None:
    session = FakeSession(FakeResponse(200, ["a", "b"]))
    response = PaidYetClient(session=session).call(
        Operation.QUERY, "tok", None, environment=Environment.SANDBOX, transaction_id="t"
    )
    assert response.body == {"data": ["a", "b"]}


def test_connect_timeout_means_request_never_sent() -> None:
    session = FakeSession(error=requests.exceptions.ConnectTimeout("connect timed out"))
    with pytest.raises(TransportFailure) as info:
        PaidYetClient(session=session).call(
            Operation.SALE, "tok", {}, environment=Environment.SANDBOX
        )
    assert info.value.request_sent is False


def test_refused_connection_means_request_never_sent() -> None:
    refused = NewConnectionError(None, "Connection refused")
    error = requests.exceptions.ConnectionError(MaxRetryError(None, "/transaction", refused))
    session = FakeSession(error=error)
    with pytest.raises(TransportFailure) as info:
        PaidYetClient(session=session).call(
            Operation.SALE, "tok", {}, environment=Environment.SANDBOX
        )
    assert info.value.request_sent is False


def test_read_timeout_may_have_reached_gateway() -> None:
    session = FakeSession(error=requests.exceptions.ReadTimeout("read timed out"))
    with pytest.raises(TransportFailure) as info:
        PaidYetClient(session=session).call(
            Operation.SALE, "tok", {}, environment=Environment.SANDBOX
        )
    assert info.value.request_sent is True

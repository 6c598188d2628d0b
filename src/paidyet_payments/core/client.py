"""
HTTP client helpers for the PaidYET transaction API.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import requests
from urllib3.exceptions import NewConnectionError

from .errors import TransportFailure
from .types import Environment, Operation

__all__ = [
    "GatewayClient",
    "GatewayResponse",
    "PaidYetClient",
    "ROUTES",
]

# operation -> (HTTP method, path template)
ROUTES: Dict[Operation, tuple[str, str]] = {
    Operation.SALE: ("POST", "/transaction"),
    Operation.REFUND: ("POST", "/transaction/refund/{transaction_id}"),
    Operation.CAPTURE: ("PUT", "/transaction/capture/{transaction_id}"),
    Operation.VOID: ("PUT", "/transaction/void/{transaction_id}"),
    Operation.QUERY: ("GET", "/transaction/{transaction_id}"),
}


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)
    text: str = ""

    @property
    def token_rejected(self) -> bool:
        return self.status_code == 401

    @property
    def server_error(self) -> bool:
        return self.status_code >= 500

    @classmethod
    def from_http(cls, response: requests.Response) -> "GatewayResponse":
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}
        return cls(status_code=response.status_code, body=body, text=response.text)


class GatewayClient(Protocol):
    def call(
        self,
        operation: Operation,
        token: str,
        payload: Optional[Dict[str, Any]],
        *,
        environment: Environment,
        transaction_id: Optional[str] = None,
    ) -> GatewayResponse: ...


def _never_connected(exc: requests.RequestException) -> bool:
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return True
    if not isinstance(exc, requests.exceptions.ConnectionError):
        return False
    reason = getattr(exc.args[0], "reason", None) if exc.args else None
    return isinstance(reason, NewConnectionError)


class PaidYetClient:
    """
    Thin wrapper around the ``/transaction`` endpoints.

    Any HTTP response, error statuses included, comes back as a
    :class:`GatewayResponse`; only a missing response raises
    :class:`~paidyet_payments.core.errors.TransportFailure`.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        base_url: Optional[str] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.base_url = base_url.rstrip("/") if base_url else None

    def url_for(
        self,
        operation: Operation,
        environment: Environment,
        transaction_id: Optional[str] = None,
    ) -> str:
        _, template = ROUTES[operation]
        if "{transaction_id}" in template and not transaction_id:
            raise ValueError(f"{operation.value} requires a transaction id")
        base = self.base_url or environment.base_url
        return base + template.format(transaction_id=transaction_id)

    def call(
        self,
        operation: Operation,
        token: str,
        payload: Optional[Dict[str, Any]],
        *,
        environment: Environment,
        transaction_id: Optional[str] = None,
    ) -> GatewayResponse:
        method, _ = ROUTES[operation]
        url = self.url_for(operation, environment, transaction_id)
        headers = {"Authorization": f"Bearer {token}"}
        body = None if method == "GET" else (payload or {})
        logging.info("Sending %s %s", method, url)
        try:
            response = self.session.request(
                method, url, json=body, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TransportFailure(
                f"{method} {url} failed: {exc}",
                request_sent=not _never_connected(exc),
            ) from exc
        logging.debug("%s %s answered %s", method, url, response.status_code)
        return GatewayResponse.from_http(response)

    def create_transaction(
        self, token: str, payload: Dict[str, Any], *, environment: Environment
    ) -> GatewayResponse:
        return self.call(Operation.SALE, token, payload, environment=environment)

    def refund(
        self,
        token: str,
        transaction_id: str,
        payload: Dict[str, Any],
        *,
        environment: Environment,
    ) -> GatewayResponse:
        return self.call(
            Operation.REFUND,
            token,
            payload,
            environment=environment,
            transaction_id=transaction_id,
        )

    def capture(
        self,
        token: str,
        transaction_id: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        environment: Environment,
    ) -> GatewayResponse:
        return self.call(
            Operation.CAPTURE,
            token,
            payload,
            environment=environment,
            transaction_id=transaction_id,
        )

    def void(
        self, token: str, transaction_id: str, *, environment: Environment
    ) -> GatewayResponse:
        return self.call(
            Operation.VOID,
            token,
            {},
            environment=environment,
            transaction_id=transaction_id,
        )

    def get_transaction(
        self, token: str, transaction_id: str, *, environment: Environment
    ) -> GatewayResponse:
        return self.call(
            Operation.QUERY,
            token,
            None,
            environment=environment,
            transaction_id=transaction_id,
        )

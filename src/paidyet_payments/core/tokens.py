"""
Bearer token issuance and the per-credential token cache.

:class:`TokenStore` is the only shared mutable state in the package. It
keeps one :class:`~paidyet_payments.core.types.CachedToken` per
:class:`~paidyet_payments.core.types.CredentialKey` and coalesces refreshes:
while an issuance for a key is in flight every caller for that key waits on
the same :class:`concurrent.futures.Future` instead of logging in again.
The store lock only guards dictionary access and is never held across the
login call, so callers for different credentials never wait on each other.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Protocol

import requests

from .errors import AuthFailure, TokenWaitTimeout
from .types import (
    CachedToken,
    CredentialKey,
    Environment,
    IssuedToken,
    MerchantCredentials,
    utc_now,
)

__all__ = [
    "MAX_TOKEN_LIFETIME_SECONDS",
    "HttpTokenIssuer",
    "TokenIssuer",
    "TokenStore",
]

MAX_TOKEN_LIFETIME_SECONDS = 24 * 60 * 60


class TokenIssuer(Protocol):
    def issue(
        self, merchant_id: str, api_key: str, environment: Environment
    ) -> IssuedToken: ...


class HttpTokenIssuer:
    """
    Performs the ``/login`` exchange against the environment's API host.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = 30,
        default_lifetime: int = 3600,
        base_url: Optional[str] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.default_lifetime = default_lifetime
        self.base_url = base_url.rstrip("/") if base_url else None

    def _login_url(self, environment: Environment) -> str:
        if self.base_url:
            return f"{self.base_url}/login"
        return environment.login_url

    def issue(
        self, merchant_id: str, api_key: str, environment: Environment
    ) -> IssuedToken:
        login_url = self._login_url(environment)
        logging.info("Requesting bearer token for merchant %s from %s", merchant_id, login_url)
        try:
            response = self.session.post(
                login_url,
                json={"merchant_id": merchant_id, "api_key": api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AuthFailure(f"Login request to {login_url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise AuthFailure(
                f"Login rejected with {response.status_code} for merchant {merchant_id}"
            )
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise AuthFailure(f"Failed to parse login response from {login_url}") from exc

        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise AuthFailure(f"Login response for merchant {merchant_id} carried no token")

        lifetime = self.default_lifetime
        if body.get("expires_in") is not None:
            try:
                lifetime = int(body["expires_in"])
            except (TypeError, ValueError) as exc:
                raise AuthFailure(
                    f"Login response has invalid expires_in: {body['expires_in']!r}"
                ) from exc
        if not 0 < lifetime <= MAX_TOKEN_LIFETIME_SECONDS:
            raise AuthFailure(f"Login response has out-of-range expires_in: {lifetime}")
        return IssuedToken(token=str(token), lifetime_seconds=lifetime)


class TokenStore:
    def __init__(
        self,
        issuer: TokenIssuer,
        *,
        refresh_skew: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utc_now,
        max_workers: Optional[int] = None,
    ) -> None:
        self._issuer = issuer
        self._refresh_skew = refresh_skew
        self._clock = clock
        self._entries: Dict[CredentialKey, CachedToken] = {}
        self._inflight: Dict[CredentialKey, Future] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="paidyet-token"
        )

    @property
    def refresh_skew(self) -> timedelta:
        return self._refresh_skew

    def get_token(
        self, credentials: MerchantCredentials, *, timeout: Optional[float] = None
    ) -> str:
        """
        Return a usable bearer token, issuing one only on a cache miss or
        once the cached token has entered the refresh-skew window.
        """
        key = credentials.cache_key
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and cached.is_usable(self._clock(), self._refresh_skew):
                return cached.value
            future = self._join_or_start(key, credentials)
        return self._wait(key, future, timeout)

    def refresh(
        self,
        credentials: MerchantCredentials,
        *,
        rejected: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Bypass the cache and issue a new token.

        When ``rejected`` names the token the gateway just refused and the
        cache already holds a different usable token, that token is returned
        without issuing again.
        """
        key = credentials.cache_key
        with self._lock:
            cached = self._entries.get(key)
            if (
                rejected is not None
                and key not in self._inflight
                and cached is not None
                and cached.value != rejected
                and cached.is_usable(self._clock(), self._refresh_skew)
            ):
                return cached.value
            future = self._join_or_start(key, credentials)
        return self._wait(key, future, timeout)

    def invalidate(self, credentials: MerchantCredentials) -> None:
        with self._lock:
            self._entries.pop(credentials.cache_key, None)

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _join_or_start(
        self, key: CredentialKey, credentials: MerchantCredentials
    ) -> Future:
        # caller holds self._lock
        future = self._inflight.get(key)
        if future is None:
            future = self._executor.submit(self._issue, key, credentials)
            self._inflight[key] = future
        return future

    def _wait(self, key: CredentialKey, future: Future, timeout: Optional[float]) -> str:
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise TokenWaitTimeout(
                f"Timed out after {timeout}s waiting for a token for merchant {key.merchant_id}"
            ) from exc

    def _issue(self, key: CredentialKey, credentials: MerchantCredentials) -> str:
        try:
            issued = self._issuer.issue(
                credentials.merchant_id, credentials.api_key, credentials.environment
            )
            if issued.lifetime_seconds <= 0:
                raise AuthFailure(
                    f"Issuer returned a non-positive token lifetime for merchant {key.merchant_id}"
                )
            now = self._clock()
            entry = CachedToken(
                value=issued.token,
                issued_at=now,
                expires_at=now + timedelta(seconds=issued.lifetime_seconds),
            )
        except AuthFailure:
            self._finish(key)
            logging.error("Bearer token issuance failed for merchant %s", key.merchant_id)
            raise
        except Exception as exc:
            self._finish(key)
            logging.error("Bearer token issuance failed for merchant %s", key.merchant_id)
            raise AuthFailure(
                f"Token issuance failed for merchant {key.merchant_id}: {exc}"
            ) from exc

        self._finish(key, entry)
        logging.info(
            "Cached bearer token for merchant %s until %s",
            key.merchant_id,
            entry.expires_at.isoformat(),
        )
        return entry.value

    def _finish(self, key: CredentialKey, entry: Optional[CachedToken] = None) -> None:
        with self._lock:
            if entry is not None:
                self._entries[key] = entry
            self._inflight.pop(key, None)

"""
Exception hierarchy shared by the PaidYET helpers.

Declines and exhausted retries are *not* exceptions; they are returned as
:mod:`paidyet_payments.core.outcomes` values.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "AuthFailure",
    "ConfigError",
    "PaidYetError",
    "TokenWaitTimeout",
    "TransportFailure",
    "ValidationFailure",
]


class PaidYetError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(PaidYetError):
    """Raised when the supplied configuration is invalid."""


class ValidationFailure(PaidYetError, ValueError):
    """The caller supplied a malformed transaction intent."""


class AuthFailure(PaidYetError):
    """Bearer token issuance failed for a credential set."""


class TokenWaitTimeout(PaidYetError):
    """A caller gave up waiting on a token issuance shared with other callers."""


class TransportFailure(PaidYetError):
    """
    No usable response came back from the gateway.

    ``request_sent`` is ``False`` only when the connection was never
    established, which guarantees the gateway did not see the request.
    """

    def __init__(
        self,
        message: str,
        *,
        request_sent: bool = True,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.request_sent = request_sent
        self.status_code = status_code

"""
Dispatch outcomes. One is produced per :meth:`TransactionDispatcher.dispatch` call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

__all__ = [
    "Approved",
    "Declined",
    "FatalFailure",
    "Outcome",
    "TransientFailure",
]


@dataclass(frozen=True)
class Approved:
    transaction_id: Optional[str]
    status: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Declined:
    """A business outcome from the gateway. Never retried."""

    status: str
    reason_code: Optional[str]
    message: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class TransientFailure:
    """
    The gateway could not be reached or answered with a server error, and
    the call was not (or no longer) eligible for retry.
    """

    cause: str

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class FatalFailure:
    cause: str

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Approved, Declined, TransientFailure, FatalFailure]

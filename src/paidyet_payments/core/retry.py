"""
Retry policy applied by the transaction dispatcher to transient failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional

from .errors import TransportFailure
from .types import Operation

__all__ = ["IDEMPOTENT_OPERATIONS", "RetryPolicy"]

IDEMPOTENT_OPERATIONS: FrozenSet[Operation] = frozenset(
    {Operation.QUERY, Operation.VOID, Operation.CAPTURE}
)


@dataclass(frozen=True)
class RetryPolicy:
    """
    ``attempts`` counts the first call, so ``attempts=3`` means at most two
    retries. Sale and Refund are only retried when the failure shows the
    request never reached the gateway, since neither carries an
    idempotency key and a lost confirmation could otherwise double-charge.

    ``retry_if`` replaces the default eligibility predicate; the attempt
    ceiling still applies.
    """

    attempts: int = 3
    delay: float = 1.0
    idempotent_operations: FrozenSet[Operation] = IDEMPOTENT_OPERATIONS
    retry_if: Optional[Callable[[Operation, TransportFailure], bool]] = None

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("RetryPolicy.attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("RetryPolicy.delay must not be negative")

    def is_eligible(self, operation: Operation, failure: TransportFailure) -> bool:
        if self.retry_if is not None:
            return self.retry_if(operation, failure)
        return operation in self.idempotent_operations or not failure.request_sent

    def should_retry(
        self, operation: Operation, failure: TransportFailure, attempt: int
    ) -> bool:
        return attempt < self.attempts and self.is_eligible(operation, failure)

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_BACKOFF_SECONDS
from .exceptions import ConflictError, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for Conflict/Transient failures of a single operation."""

    attempts: int = DEFAULT_RETRY_ATTEMPTS
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS

    def run(self, fn: Callable[[], T], *, operation: str) -> T:
        """Run ``fn``; after the last failed attempt a :class:`TransientError` is raised."""

        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning("%s attempt %d failed (%s), retrying", operation, state.attempt_number, exc)

        retrying = Retrying(
            stop=stop_after_attempt(max(1, int(self.attempts))),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=max(self.backoff_seconds * 8, 0)),
            retry=retry_if_exception_type((ConflictError, TransientError)),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            return retrying(fn)
        except ConflictError as e:
            raise TransientError(f"{operation} could not complete because of concurrent updates, try again") from e

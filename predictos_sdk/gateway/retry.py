"""
Retry policy for provider calls.

Classifies an outcome (exception or HTTP status) as retryable or terminal and
computes the exponential backoff delay. Message-substring classification is a
heuristic kept behind ``classify_error`` so it can be tested on its own.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import requests

from .exceptions import (
    GatewayConnectionError, GatewayTimeoutError, ProviderHTTPError
)

logger = logging.getLogger(__name__)

BASE_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 10000

# Lower-cased message substring -> classification. Checked in order.
RETRYABLE_ERROR_MARKERS: Tuple[Tuple[str, str], ...] = (
    ("timeout", "timeout"),
    ("timed out", "timeout"),
    ("connection", "connection"),
    ("tls", "tls"),
    ("ssl", "tls"),
    ("eof", "eof"),
    ("network", "network"),
    ("fetch failed", "network"),
)


class RetryDecision(str, Enum):
    RETRY = "retry"
    FAIL = "fail"


def backoff_ms(attempt: int) -> int:
    """
    Delay before the attempt following ``attempt`` (0-indexed).

    Returns ``min(1000 * 2**attempt, 10000)`` milliseconds.
    """
    return min(BASE_BACKOFF_MS * (2 ** attempt), MAX_BACKOFF_MS)


def classify_error(error: BaseException) -> Optional[str]:
    """
    Classify a transport-level error.

    Typed transport errors are recognised first; anything else falls back to
    the ``RETRYABLE_ERROR_MARKERS`` substring table.

    Args:
        error: The exception raised by an attempt

    Returns:
        A classification such as "timeout" or "connection", or None when the
        error does not look like a transient network failure
    """
    if isinstance(error, (GatewayTimeoutError, requests.Timeout)):
        return "timeout"
    if isinstance(error, requests.exceptions.SSLError):
        return "tls"
    if isinstance(error, (GatewayConnectionError, requests.ConnectionError)):
        return "connection"

    message = str(error).lower()
    for marker, classification in RETRYABLE_ERROR_MARKERS:
        if marker in message:
            return classification
    return None


def is_retryable_error(error: BaseException) -> bool:
    """Whether ``error`` looks like a transient network failure."""
    return classify_error(error) is not None


@dataclass
class RetryState:
    """Bookkeeping for one call's retry loop."""
    attempt: int = 0
    last_error: Optional[BaseException] = None
    elapsed_backoff_ms: int = 0


class RetryPolicy:
    """
    Decide whether a failed attempt is retried.

    Total attempts are ``max_retries + 1``.
    """

    def __init__(self, max_retries: int = 3):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_retries

    def evaluate(
        self,
        attempt: int,
        error: Optional[BaseException] = None,
        status_code: Optional[int] = None
    ) -> RetryDecision:
        """
        Evaluate one failed attempt.

        Args:
            attempt: 0-indexed attempt that just failed
            error: Exception raised by the attempt, if any
            status_code: Upstream HTTP status, if any. Taken from ``error``
                when it is a ProviderHTTPError and no status is given.

        Returns:
            RetryDecision.RETRY or RetryDecision.FAIL
        """
        if status_code is None and isinstance(error, ProviderHTTPError):
            status_code = error.status_code

        if error is not None and getattr(error, "terminal", False):
            return RetryDecision.FAIL

        if status_code is not None:
            if 400 <= status_code < 500 and status_code != 429:
                return RetryDecision.FAIL
            if status_code >= 500 or status_code == 429:
                return RetryDecision.RETRY if self.has_attempts_left(attempt) else RetryDecision.FAIL

        # A permanent-looking failure on the very first attempt will not heal.
        if error is not None and attempt == 0 and not is_retryable_error(error):
            return RetryDecision.FAIL

        if not self.has_attempts_left(attempt):
            return RetryDecision.FAIL

        return RetryDecision.RETRY

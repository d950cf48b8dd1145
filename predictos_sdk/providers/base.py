"""
Shared machinery for provider call gateways.

Every gateway runs the same sequential retry loop around a provider-specific
``_attempt``. Backoff sleeps are ``time.sleep`` calls so only the calling
thread waits.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..config import GatewayConfig
from ..exceptions import PredictOSError
from ..gateway._rate_limited_log import rate_limited_log
from ..gateway.exceptions import (
    GatewayConnectionError, ResponseParseError, http_error_for_status
)
from ..gateway.http import create_session, fetch_with_timeout
from ..gateway.retry import RetryDecision, RetryPolicy, RetryState, backoff_ms
from ..models import CallRequest, CallResult
from ..utils import sanitize_payload


class ProviderGateway(ABC):
    """
    Abstract base class for provider gateways.

    Subclasses shape the request payload and run one attempt; the base class
    owns retries, backoff and HTTP status classification.
    """

    #: Provider tag, also the key used by the response normalizer
    tag: str = ""
    #: Human-readable provider name for error messages
    display_name: str = ""

    def __init__(
        self,
        config: GatewayConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the gateway.

        Args:
            config: Gateway settings (credentials, URLs, timeout)
            session: HTTP session to reuse (a fresh one is created otherwise)
            logger: Logger to use (defaults to the provider module logger)
        """
        self.config = config
        self.session = session or create_session()
        self.logger = logger or logging.getLogger(type(self).__module__)

    @property
    @abstractmethod
    def url(self) -> str:
        """Endpoint the gateway posts to."""

    @abstractmethod
    def check_credentials(self) -> None:
        """
        Raise ConfigurationError when the provider's credential is missing.
        """

    @abstractmethod
    def build_payload(self, request: CallRequest) -> Dict[str, Any]:
        """Shape the provider-specific JSON request body."""

    @abstractmethod
    def _attempt(self, request: CallRequest, payload: Dict[str, Any]) -> CallResult:
        """
        Run one attempt against the provider.

        Raises:
            PredictOSError: Any classified failure, consulted by the retry policy
        """

    def request_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def call(self, request: CallRequest) -> CallResult:
        """
        Send ``request`` to the provider, retrying per the retry policy.

        Args:
            request: The prompt and its per-call options

        Returns:
            Normalized CallResult

        Raises:
            ConfigurationError: If the provider credential is missing
            PredictOSError: The last attempt's error once retries are exhausted
                or a non-retryable failure occurs
        """
        self.check_credentials()
        policy = RetryPolicy(request.max_retries)
        payload = self.build_payload(request)
        state = RetryState()
        self.logger.debug(f"{self.display_name} payload: {sanitize_payload(payload)}")

        while True:
            self.logger.info(
                f"Calling {self.display_name} model {payload.get('model')} "
                f"(attempt {state.attempt + 1}/{policy.total_attempts})"
            )
            try:
                return self._attempt(request, payload)
            except PredictOSError as e:
                state.last_error = e

            decision = policy.evaluate(state.attempt, error=state.last_error)
            if decision is RetryDecision.FAIL:
                self.logger.error(
                    f"{self.display_name} call failed after {state.attempt + 1} attempt(s): {state.last_error}"
                )
                raise state.last_error

            delay = backoff_ms(state.attempt)
            rate_limited_log(
                f"{self.display_name} error: {type(state.last_error).__name__}. Retrying with backoff",
                level="warning",
                logger_instance=self.logger,
            )
            self.logger.debug(
                f"{self.display_name} attempt {state.attempt + 1} failed ({state.last_error}), "
                f"retrying in {delay}ms"
            )
            time.sleep(delay / 1000)
            state.elapsed_backoff_ms += delay
            state.attempt += 1

    def _send(
        self,
        payload: Dict[str, Any],
        extra_headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        """
        POST ``payload`` to the provider, bounded by the configured timeout.

        Raises:
            GatewayTimeoutError: If the deadline fires
            GatewayConnectionError: If the connection fails or the response
                body is cut off
        """
        headers = self.request_headers()
        if extra_headers:
            headers.update(extra_headers)
        try:
            return fetch_with_timeout(
                self.session,
                "POST",
                self.url,
                timeout_ms=self.config.timeout_ms,
                json=payload,
                headers=headers,
            )
        except requests.RequestException as e:
            raise GatewayConnectionError(f"Connection to {self.display_name} failed: {e}") from e

    def _raise_for_status(self, response: requests.Response, context: str = "API error") -> None:
        """Raise the taxonomy error for a non-success response."""
        if response.ok:
            return
        body = response.text
        raise http_error_for_status(
            response.status_code,
            f"{self.display_name} {context}: {response.status_code} {response.reason} - {body}",
            body,
        )

    def _read_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(f"Invalid JSON from {self.display_name}: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

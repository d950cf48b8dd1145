"""
Exceptions for the provider call gateway.

Each class sets ``terminal``; the retry policy fails immediately on terminal
errors and otherwise applies the status/attempt rules.
"""
from typing import Optional

from ..exceptions import PredictOSError


class GatewayError(PredictOSError):
    """Base exception for gateway-related errors."""
    pass


class GatewayConnectionError(GatewayError):
    """Raised when the connection to an upstream provider fails."""
    pass


class GatewayTimeoutError(GatewayError):
    """Raised when an upstream call exceeds its deadline."""

    def __init__(self, timeout_ms: int, message: Optional[str] = None):
        self.timeout_ms = timeout_ms
        super().__init__(message or f"Request timeout after {timeout_ms}ms")


class ProviderHTTPError(GatewayError):
    """Raised when an upstream provider answers with a non-success status."""

    def __init__(self, message: str, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ClientError(ProviderHTTPError):
    """HTTP 4xx other than 429. Never retried."""

    terminal = True


class RateLimitedError(ProviderHTTPError):
    """HTTP 429."""
    pass


class UpstreamServerError(ProviderHTTPError):
    """HTTP 5xx."""
    pass


class PaymentChallengeMalformedError(GatewayError):
    """The 402 response carried no usable payment challenge."""

    terminal = True


class UnsupportedNetworkError(PaymentChallengeMalformedError):
    """No accepted payment option matched the configured settlement network."""
    pass


class SigningFailureError(GatewayError):
    """The payment authorization could not be signed."""

    terminal = True


class ResponseParseError(GatewayError):
    """The final upstream response body was not valid structured output."""

    terminal = True


def http_error_for_status(status_code: int, message: str, body: str = "") -> ProviderHTTPError:
    """
    Build the taxonomy-specific error for a non-success HTTP status.

    Args:
        status_code: Upstream HTTP status
        message: Human-readable message
        body: Upstream response body text

    Returns:
        ClientError, RateLimitedError or UpstreamServerError
    """
    if status_code == 429:
        return RateLimitedError(message, status_code, body)
    if 400 <= status_code < 500:
        return ClientError(message, status_code, body)
    return UpstreamServerError(message, status_code, body)

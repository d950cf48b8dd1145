"""
Gateway plumbing shared by every provider: timeout-bounded fetch, retry
policy, error taxonomy and response normalization.
"""
from .exceptions import (
    ClientError, GatewayConnectionError, GatewayError, GatewayTimeoutError,
    PaymentChallengeMalformedError, ProviderHTTPError, RateLimitedError,
    ResponseParseError, SigningFailureError, UnsupportedNetworkError,
    UpstreamServerError, http_error_for_status
)
from .http import create_session, fetch_with_timeout
from .normalize import (
    BlockRunResponse, GrokResponse, OpenAIResponse, ProviderResponse,
    extract_output_text, normalize_response, to_call_result
)
from .retry import RetryDecision, RetryPolicy, backoff_ms, classify_error, is_retryable_error

__all__ = [
    'GatewayError', 'GatewayConnectionError', 'GatewayTimeoutError',
    'ProviderHTTPError', 'ClientError', 'RateLimitedError', 'UpstreamServerError',
    'PaymentChallengeMalformedError', 'UnsupportedNetworkError',
    'SigningFailureError', 'ResponseParseError', 'http_error_for_status',
    'create_session', 'fetch_with_timeout',
    'RetryDecision', 'RetryPolicy', 'backoff_ms', 'classify_error', 'is_retryable_error',
    'ProviderResponse', 'BlockRunResponse', 'OpenAIResponse', 'GrokResponse',
    'normalize_response', 'extract_output_text', 'to_call_result',
]

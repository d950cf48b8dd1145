"""
Timeout-bounded HTTP fetch for provider calls.

Provider sessions never retry at this layer; the gateways own the retry loop.
"""
import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..version import __version__
from .exceptions import GatewayTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 120000


def create_session(retries: int = 0) -> requests.Session:
    """
    Create an HTTP session.

    Provider gateways use the default ``retries=0`` so urllib3 never retries
    behind the gateway's back. Market-data clients pass a small count to have
    idempotent GETs retried on connection errors and 5xx.

    Args:
        retries: urllib3 retry budget for GET requests

    Returns:
        Configured requests.Session
    """
    session = requests.Session()
    if retries > 0:
        max_retries = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
    else:
        max_retries = 0
    session.mount("http://", HTTPAdapter(max_retries=max_retries))
    session.mount("https://", HTTPAdapter(max_retries=max_retries))
    session.headers["User-Agent"] = f"predictos-sdk/{__version__}"
    return session


def fetch_with_timeout(
    session: requests.Session,
    method: str,
    url: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    **kwargs: Any
) -> requests.Response:
    """
    Issue one HTTP request bounded by ``timeout_ms``.

    Args:
        session: Session to send the request with
        method: HTTP method
        url: Target URL
        timeout_ms: Deadline in milliseconds, applied to connect and read
        **kwargs: Passed through to ``session.request``

    Returns:
        The response, whatever its status

    Raises:
        GatewayTimeoutError: If the deadline fires
        requests.RequestException: Any other transport failure, unchanged
    """
    try:
        return session.request(method, url, timeout=timeout_ms / 1000, **kwargs)
    except requests.Timeout as e:
        logger.debug(f"{method} {url} timed out after {timeout_ms}ms: {e}")
        raise GatewayTimeoutError(timeout_ms) from e

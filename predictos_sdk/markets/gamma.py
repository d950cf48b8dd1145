"""
Polymarket Gamma API client (public market metadata).
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import validate_secure_url
from ..exceptions import MarketDataError, MarketNotFoundError
from ..gateway.exceptions import GatewayTimeoutError
from ..gateway.http import create_session, fetch_with_timeout

logger = logging.getLogger(__name__)

GAMMA_API_URL = "https://gamma-api.polymarket.com"
DEFAULT_TIMEOUT_MS = 30000
# Idempotent GETs; retried inside the HTTP adapter
MARKET_DATA_RETRIES = 2


class GammaClient:
    """Read-only client for market and event lookups by slug."""

    def __init__(
        self,
        base_url: str = GAMMA_API_URL,
        session: Optional[requests.Session] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS
    ):
        self.base_url = validate_secure_url("base_url", base_url).rstrip("/")
        self.session = session or create_session(retries=MARKET_DATA_RETRIES)
        self.timeout_ms = timeout_ms

    def _get(self, path: str) -> requests.Response:
        try:
            return fetch_with_timeout(
                self.session, "GET", f"{self.base_url}{path}",
                timeout_ms=self.timeout_ms,
                headers={"Accept": "application/json"},
            )
        except (requests.RequestException, GatewayTimeoutError) as e:
            raise MarketDataError(f"Gamma API request failed: {e}") from e

    def get_market_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """
        Fetch one market by slug.

        Returns:
            The market record, or None when Gamma answers 404

        Raises:
            MarketDataError: For any other non-success response or an unreadable body
        """
        logger.info(f"Fetching market data for slug: {slug}")
        response = self._get(f"/markets/slug/{slug}")
        if response.status_code == 404:
            logger.warning(f"Market not found: {slug}")
            return None
        if not response.ok:
            raise MarketDataError(
                f"Gamma API error: {response.status_code} {response.reason}", response.status_code
            )
        return self._json(response)

    def get_event_markets(self, slug: str) -> List[Dict[str, Any]]:
        """
        Fetch the markets of a Polymarket event.

        Raises:
            MarketNotFoundError: If the event does not exist
            MarketDataError: For any other non-success response or an unreadable body
        """
        response = self._get(f"/events/slug/{slug}")
        if response.status_code == 404:
            raise MarketNotFoundError(f"Event '{slug}' not found on Polymarket.", 404)
        if not response.ok:
            raise MarketDataError(
                f"Gamma API error: {response.status_code} {response.reason}", response.status_code
            )
        event = self._json(response)
        return list(event.get("markets") or [])

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise MarketDataError(f"Invalid JSON from Gamma API: {e}", response.status_code) from e
        if not isinstance(data, dict):
            raise MarketDataError(
                f"Unexpected Gamma API response: {type(data).__name__}", response.status_code
            )
        return data

"""
DFlow client for Kalshi market data.
"""
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from ..config import validate_secure_url
from ..exceptions import MarketDataError, MarketNotFoundError
from ..gateway.exceptions import GatewayTimeoutError
from ..gateway.http import create_session, fetch_with_timeout

logger = logging.getLogger(__name__)

DFLOW_API_URL = "https://prediction-markets-api.dflow.net/api/v1"
DEFAULT_TIMEOUT_MS = 30000
# Idempotent GETs; retried inside the HTTP adapter
MARKET_DATA_RETRIES = 2


def build_kalshi_market_url(ticker: str) -> str:
    """
    Kalshi market page for a market ticker.

    ``"KXBTCD-25DEC1217-T89999.99"`` maps to ``https://kalshi.com/markets/KXBTCD``.
    """
    return f"https://kalshi.com/markets/{ticker.split('-')[0]}"


class DFlowClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS
    ):
        base_url = base_url or os.environ.get("DFLOW_API_URL") or DFLOW_API_URL
        self.base_url = validate_secure_url("base_url", base_url).rstrip("/")
        self.api_key = api_key or os.environ.get("DFLOW_API_KEY")
        self.session = session or create_session(retries=MARKET_DATA_RETRIES)
        self.timeout_ms = timeout_ms

    def get_kalshi_markets_by_event(self, event_ticker: str) -> List[Dict[str, Any]]:
        """
        Fetch the markets of a Kalshi event.

        Args:
            event_ticker: Event ticker, e.g. "KXBTC-25DEC"

        Returns:
            Market records (possibly empty)

        Raises:
            MarketNotFoundError: If DFlow answers 404
            MarketDataError: For any other failure
        """
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        try:
            response = fetch_with_timeout(
                self.session, "GET", f"{self.base_url}/event/{event_ticker}",
                timeout_ms=self.timeout_ms,
                params={"withNestedMarkets": "true"},
                headers=headers,
            )
        except (requests.RequestException, GatewayTimeoutError) as e:
            raise MarketDataError(f"DFlow request failed: {e}") from e

        if response.status_code == 404:
            raise MarketNotFoundError(f"Event '{event_ticker}' not found on Kalshi (via DFlow).", 404)
        if not response.ok:
            raise MarketDataError(
                f"DFlow API error: {response.status_code} {response.reason}", response.status_code
            )
        try:
            data = response.json()
        except ValueError as e:
            raise MarketDataError(f"Invalid JSON from DFlow: {e}", response.status_code) from e
        if not isinstance(data, dict):
            raise MarketDataError(f"Unexpected DFlow response: {type(data).__name__}", response.status_code)
        markets = list(data.get("markets") or [])
        logger.info(f"Found {len(markets)} markets for Kalshi event {event_ticker} via DFlow")
        return markets

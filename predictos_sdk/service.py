"""
Service boundary.

``dispatch`` adapts any HTTP front end to the handlers: it answers CORS
preflight, enforces POST, decodes the JSON body and turns unexpected
exceptions into a generic 500 envelope. Handlers take the decoded body and
return ``(status, body)``.
"""
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .agents import AnalysisAggregatorAgent, EventAnalysisAgent
from .agents.base import HandlerResult, error_body
from .config import GatewayConfig, TradingConfig
from .exceptions import ConfigurationError, MarketDataError, MarketNotFoundError, TradingClientError
from .markets import (
    BotLog, DFlowClient, GammaClient, PolymarketTrader, TradingContext,
    build_market_slug, format_time_short, is_valid_asset, next_15min_timestamp
)
from .models import PmType
from .router import AnalysisRouter
from .utils import build_metadata

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

DEFAULT_ORDER_PRICE = 0.48
DEFAULT_ORDER_SIZE_USD = 25

Handler = Callable[[Any], HandlerResult]


@dataclass
class ServiceResponse:
    status: int
    body: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=lambda: dict(CORS_HEADERS))

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


def _json_response(status: int, payload: Dict[str, Any]) -> ServiceResponse:
    headers = dict(CORS_HEADERS)
    headers["Content-Type"] = "application/json"
    return ServiceResponse(status=status, body=json.dumps(payload), headers=headers)


def _metadata(start_time: float) -> Dict[str, Any]:
    return build_metadata(start_time).model_dump(by_alias=True, exclude_none=True)


def dispatch(handler: Handler, method: str, body_text: Optional[str]) -> ServiceResponse:
    """
    Run ``handler`` for one HTTP request.

    Args:
        handler: Callable taking the decoded body, returning (status, body)
        method: HTTP method
        body_text: Raw request body

    Returns:
        ServiceResponse carrying CORS headers
    """
    start_time = time.monotonic()
    if method.upper() == "OPTIONS":
        return ServiceResponse(status=204)
    logger.info(f"Received request: {method}")
    if method.upper() != "POST":
        return _json_response(405, error_body("Method not allowed. Use POST."))
    try:
        body = json.loads(body_text or "")
    except ValueError:
        return _json_response(400, error_body("Invalid JSON in request body"))

    try:
        status, payload = handler(body)
    except Exception as e:
        logger.exception("Unhandled error")
        return _json_response(
            500, error_body(str(e) or "An unexpected error occurred", _metadata(start_time))
        )
    return _json_response(status, payload)


def detect_pm_type(url: str) -> Optional[PmType]:
    lower = url.lower()
    if "kalshi" in lower:
        return PmType.KALSHI
    if "polymarket" in lower:
        return PmType.POLYMARKET
    return None


def extract_kalshi_event_ticker(url: str) -> Optional[str]:
    """Last path segment, upper-cased."""
    return url.rstrip("/").split("/")[-1].upper() or None


def extract_polymarket_event_slug(url: str) -> Optional[str]:
    """Last path segment with the query string removed."""
    return url.split("?")[0].split("/")[-1] or None


def handle_get_events(
    body: Any,
    dflow: Optional[DFlowClient] = None,
    gamma: Optional[GammaClient] = None
) -> HandlerResult:
    """
    Resolve a Kalshi or Polymarket event URL to its markets.

    Kalshi events are read through DFlow, Polymarket events through Gamma.
    Not-found maps to 404, other upstream failures to 502.
    """
    start_time = time.monotonic()
    url = body.get("url") if isinstance(body, dict) else None
    if not url:
        return 400, error_body("Missing required parameter: 'url'")

    pm_type = detect_pm_type(url)
    if pm_type is None:
        return 400, error_body(
            "Could not detect prediction market type from URL. Use Kalshi or Polymarket URLs."
        )

    if pm_type is PmType.KALSHI:
        identifier = extract_kalshi_event_ticker(url)
        if not identifier:
            return 400, error_body("Could not extract event ticker from URL")
        data_provider = "dflow"
    else:
        identifier = extract_polymarket_event_slug(url)
        if not identifier:
            return 400, error_body("Could not extract event slug from URL")
        data_provider = "gamma"

    try:
        if pm_type is PmType.KALSHI:
            markets = (dflow or DFlowClient()).get_kalshi_markets_by_event(identifier)
        else:
            markets = (gamma or GammaClient()).get_event_markets(identifier)
    except MarketNotFoundError as e:
        logger.warning(f"Event not found: {e}")
        return 404, error_body(str(e), _metadata(start_time))
    except MarketDataError as e:
        logger.error(f"Failed to fetch {pm_type.value} markets: {e}")
        return 502, error_body(f"Failed to fetch markets: {e}", _metadata(start_time))

    if not markets:
        return 404, error_body(
            f"No markets found for '{identifier}' on {pm_type.value}.", _metadata(start_time)
        )

    logger.info(f"Found {len(markets)} markets for {pm_type.value} event {identifier}")
    return 200, {
        "success": True,
        "eventIdentifier": identifier,
        "pmType": pm_type.value,
        "markets": markets,
        "marketsCount": len(markets),
        "dataProvider": data_provider,
        "metadata": _metadata(start_time),
    }


def _optional_number(body: Dict[str, Any], key: str) -> Optional[float]:
    value = body.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError(f"Invalid '{key}'. Must be a non-negative number")
    return value


class LimitOrderBot:
    """
    Places straddle limit orders on the next 15-minute up/down market.

    The trading context is shared across requests so the CLOB client is
    initialized once per process.
    """

    def __init__(
        self,
        context: Optional[TradingContext] = None,
        gamma: Optional[GammaClient] = None,
        clock: Callable[[], float] = time.time
    ):
        self.context = context
        self.gamma = gamma
        self.clock = clock
        self._context_lock = threading.Lock()

    def _get_context(self) -> TradingContext:
        with self._context_lock:
            if self.context is None:
                self.context = TradingContext(TradingConfig.from_env())
            return self.context

    def handle(self, body: Any) -> HandlerResult:
        bot_log = BotLog()

        def fail(status: int, message: str, **extra: Any) -> HandlerResult:
            payload = {"success": False, "error": message, **extra, "logs": bot_log.to_wire()}
            return status, payload

        asset = body.get("asset") if isinstance(body, dict) else None
        if not is_valid_asset(asset):
            bot_log.log("ERROR", "Invalid or missing asset", {"asset": asset})
            return fail(400, "Invalid asset. Must be one of: BTC, SOL, ETH, XRP")
        try:
            price = _optional_number(body, "price")
            size_usd = _optional_number(body, "sizeUsd")
        except ValueError as e:
            bot_log.log("ERROR", str(e))
            return fail(400, str(e))

        asset = asset.upper()
        order_price = price / 100 if price else DEFAULT_ORDER_PRICE
        order_size_usd = size_usd or DEFAULT_ORDER_SIZE_USD
        timestamp = next_15min_timestamp(self.clock())
        market_slug = build_market_slug(asset, timestamp)

        try:
            context = self._get_context()
        except ConfigurationError as e:
            bot_log.log("ERROR", f"Failed to initialize client: {e}")
            return fail(500, f"Client initialization failed: {e}")

        trader = PolymarketTrader(context, gamma=self.gamma, bot_log=bot_log)
        market_result: Dict[str, Any] = {
            "marketSlug": market_slug,
            "marketStartTime": format_time_short(timestamp),
            "targetTimestamp": timestamp,
        }
        data = {
            "asset": asset,
            "pricePercent": order_price * 100,
            "sizeUsd": order_size_usd,
            "market": market_result,
        }

        try:
            market = trader.get_market_by_slug(market_slug)
        except (MarketDataError, TradingClientError) as e:
            bot_log.log("ERROR", f"Error processing market {market_slug}: {e}")
            market_result["error"] = str(e)
            return 200, {"success": False, "data": data, "logs": bot_log.to_wire()}

        if market is None:
            market_result["error"] = "Market not found - may not be created yet"
            return 200, {"success": False, "data": data, "logs": bot_log.to_wire()}

        market_result["marketTitle"] = market.get("title")
        try:
            token_ids = trader.extract_token_ids(market)
        except ValueError as e:
            bot_log.log("ERROR", f"Failed to extract token IDs: {e}")
            market_result["error"] = f"Token extraction failed: {e}"
            return fail(200, market_result["error"], data=data)

        orders = trader.place_straddle_orders(token_ids, order_price, order_size_usd)
        market_result["ordersPlaced"] = {side: r.model_dump(exclude_none=True) for side, r in orders.items()}
        return 200, {"success": True, "data": data, "logs": bot_log.to_wire()}


def create_handlers(config: Optional[GatewayConfig] = None) -> Dict[str, Handler]:
    """
    Build the handler table keyed by function name.

    One router and one trading context are shared by all requests.
    """
    router = AnalysisRouter(config)
    return {
        "get-events": handle_get_events,
        "event-analysis-agent": EventAnalysisAgent(router).handle,
        "analysis-aggregator-agent": AnalysisAggregatorAgent(router).handle,
        "polymarket-up-down-15-markets-limit-order-bot": LimitOrderBot().handle,
    }

"""
Polymarket order placement.

``TradingContext`` owns the CLOB client. It is created once, on first use,
under a lock: concurrent first callers block until the first one finishes and
then share its client. A failed initialization is not cached.
"""
import logging
import math
import threading
from typing import Any, Callable, Dict, List, Optional

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, OrderType, PartialCreateOrderOptions
from py_clob_client.order_builder.constants import BUY, SELL

from ..config import TradingConfig
from ..exceptions import TradingClientError
from ..models import BotLogEntry, OrderResponse, TokenIds
from ..utils import truncate_middle, utc_timestamp
from .gamma import GammaClient
from .slugs import parse_token_ids

logger = logging.getLogger(__name__)

# 15-minute up/down markets
DEFAULT_TICK_SIZE = "0.01"
DEFAULT_NEG_RISK = False

_LEVEL_METHODS = {
    "INFO": "info",
    "WARN": "warning",
    "ERROR": "error",
    "SUCCESS": "info",
}


class BotLog:
    """
    Collects structured log entries for the caller while also emitting them
    through ``logging``.
    """

    def __init__(self, logger_instance: Optional[logging.Logger] = None):
        self.entries: List[BotLogEntry] = []
        self._logger = logger_instance or logger

    def log(self, level: str, message: str, details: Optional[Dict[str, Any]] = None) -> BotLogEntry:
        entry = BotLogEntry(timestamp=utc_timestamp(), level=level, message=message, details=details)
        self.entries.append(entry)
        getattr(self._logger, _LEVEL_METHODS[level])(f"[{level}] {message}" + (f" {details}" if details else ""))
        return entry

    def to_wire(self) -> List[Dict[str, Any]]:
        return [e.model_dump(exclude_none=True) for e in self.entries]


def create_clob_client(config: TradingConfig) -> ClobClient:
    """Build an authenticated CLOB client, deriving API credentials from the wallet key."""
    client = ClobClient(
        config.clob_host,
        key=config.private_key,
        chain_id=config.chain_id,
        signature_type=config.signature_type,
        funder=config.proxy_address,
    )
    client.set_api_creds(client.create_or_derive_api_creds())
    return client


class TradingContext:
    """Holds the once-initialized trading client."""

    def __init__(
        self,
        config: TradingConfig,
        client_factory: Callable[[TradingConfig], Any] = create_clob_client
    ):
        self.config = config
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._client is not None

    def get_client(self, bot_log: Optional[BotLog] = None) -> Any:
        """
        Return the trading client, creating it on first use.

        Raises:
            TradingClientError: If the client cannot be created
        """
        with self._lock:
            if self._client is not None:
                return self._client
            if bot_log:
                bot_log.log("INFO", "Initializing Polymarket CLOB client...")
            try:
                self._client = self._client_factory(self.config)
            except Exception as e:
                if bot_log:
                    bot_log.log("ERROR", f"Failed to initialize CLOB client: {e}")
                raise TradingClientError(f"Failed to initialize CLOB client: {e}") from e
            if bot_log:
                bot_log.log("SUCCESS", "CLOB client initialized", {
                    "funder": truncate_middle(self.config.proxy_address),
                    "signatureType": self.config.signature_type,
                })
            return self._client


class PolymarketTrader:
    """Places limit orders on Polymarket 15-minute up/down markets."""

    def __init__(
        self,
        context: TradingContext,
        gamma: Optional[GammaClient] = None,
        bot_log: Optional[BotLog] = None
    ):
        self.context = context
        self.gamma = gamma or GammaClient()
        self.bot_log = bot_log or BotLog()

    def get_market_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Fetch a market record, None if it does not exist (yet)."""
        self.bot_log.log("INFO", f"Fetching market data for slug: {slug}")
        market = self.gamma.get_market_by_slug(slug)
        if market is None:
            self.bot_log.log("WARN", f"Market not found: {slug}")
        else:
            self.bot_log.log("SUCCESS", f"Found market: {market.get('title') or slug}")
        return market

    def extract_token_ids(self, market: Dict[str, Any]) -> TokenIds:
        """
        Read the Up and Down token ids from a market record.

        Raises:
            ValueError: If ``clobTokenIds`` is missing or malformed
        """
        raw = market.get("clobTokenIds")
        if not raw:
            raise ValueError("No clobTokenIds found in market data")
        up, down = parse_token_ids(raw)
        self.bot_log.log("INFO", "Extracted token IDs", {
            "up": truncate_middle(up, head=16),
            "down": truncate_middle(down, head=16),
        })
        return TokenIds(up=up, down=down)

    def place_order(self, token_id: str, price: float, size: float, side: str = "BUY") -> OrderResponse:
        """
        Place one GTC limit order. Never raises.

        Args:
            token_id: Outcome token id
            price: Limit price as a probability (0-1)
            size: Share count, floored to a whole number
            side: "BUY" or "SELL"

        Returns:
            OrderResponse; ``success`` is False with ``errorMsg`` on any failure
        """
        shares = math.floor(size)
        self.bot_log.log("INFO", f"Placing {side} order", {
            "tokenId": truncate_middle(token_id, head=16),
            "price": price,
            "size": shares,
        })
        try:
            client = self.context.get_client(self.bot_log)
            order = client.create_order(
                OrderArgs(
                    token_id=token_id,
                    price=price,
                    size=shares,
                    side=BUY if side == "BUY" else SELL,
                    fee_rate_bps=0,
                ),
                PartialCreateOrderOptions(tick_size=DEFAULT_TICK_SIZE, neg_risk=DEFAULT_NEG_RISK),
            )
            result = client.post_order(order, OrderType.GTC) or {}
        except Exception as e:
            self.bot_log.log("ERROR", f"Failed to place order: {e}")
            return OrderResponse(success=False, errorMsg=str(e))

        order_id = result.get("orderID") or result.get("id")
        status = result.get("status") or "submitted"
        self.bot_log.log("SUCCESS", "Order placed successfully", {"orderId": order_id, "status": status})
        return OrderResponse(success=True, orderId=order_id, status=status)

    def place_straddle_orders(self, token_ids: TokenIds, price: float, size_usd: float) -> Dict[str, OrderResponse]:
        """
        Buy both Up and Down at ``price`` for ``size_usd`` each.

        Returns:
            ``{"up": OrderResponse, "down": OrderResponse}``
        """
        size = size_usd / price
        self.bot_log.log("INFO", "Placing straddle orders", {
            "price": f"{price * 100:.1f}%",
            "sizeUsd": f"${size_usd}",
            "shares": math.floor(size),
        })
        return {
            "up": self.place_order(token_ids.up, price, size, "BUY"),
            "down": self.place_order(token_ids.down, price, size, "BUY"),
        }

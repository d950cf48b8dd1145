"""
Market-data and trading collaborators.
"""
from .dflow import DFlowClient, build_kalshi_market_url
from .gamma import GammaClient
from .slugs import (
    ASSET_SLUG_PREFIXES, SUPPORTED_ASSETS, build_market_slug, format_time_short,
    is_valid_asset, next_15min_timestamp, parse_token_ids
)
from .trading import BotLog, PolymarketTrader, TradingContext, create_clob_client

__all__ = [
    "DFlowClient",
    "GammaClient",
    "BotLog",
    "PolymarketTrader",
    "TradingContext",
    "create_clob_client",
    "build_kalshi_market_url",
    "ASSET_SLUG_PREFIXES",
    "SUPPORTED_ASSETS",
    "build_market_slug",
    "format_time_short",
    "is_valid_asset",
    "next_15min_timestamp",
    "parse_token_ids",
]

"""
Helpers for Polymarket 15-minute up/down markets.
"""
import json
import math
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

SUPPORTED_ASSETS = ("BTC", "SOL", "ETH", "XRP")

ASSET_SLUG_PREFIXES: Dict[str, str] = {
    "BTC": "btc-updown-15m-",
    "SOL": "sol-updown-15m-",
    "ETH": "eth-updown-15m-",
    "XRP": "xrp-updown-15m-",
}

SLOT_SECONDS = 15 * 60


def is_valid_asset(asset: Optional[str]) -> bool:
    return isinstance(asset, str) and asset.upper() in SUPPORTED_ASSETS


def build_market_slug(asset: str, timestamp: int) -> str:
    """Slug of the ``asset`` market starting at ``timestamp``, e.g. ``btc-updown-15m-1700000100``."""
    return f"{ASSET_SLUG_PREFIXES[asset.upper()]}{timestamp}"


def next_15min_timestamp(now: Optional[float] = None) -> int:
    """
    Start of the closest upcoming 15-minute slot, in epoch seconds.

    A ``now`` that falls exactly on a slot boundary is returned unchanged.
    """
    if now is None:
        now = time.time()
    return math.ceil(int(now) / SLOT_SECONDS) * SLOT_SECONDS


def format_time_short(timestamp: int) -> str:
    """Format epoch seconds as ``HH:MM:SS UTC``."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%H:%M:%S") + " UTC"


def parse_token_ids(clob_token_ids: str) -> List[str]:
    """
    Parse a market's ``clobTokenIds`` JSON string into ``[up, down]``.

    Raises:
        ValueError: If the string is not JSON or holds fewer than two ids
    """
    token_ids = json.loads(clob_token_ids)
    if not isinstance(token_ids, list) or len(token_ids) < 2:
        count = len(token_ids) if isinstance(token_ids, list) else 0
        raise ValueError(f"Expected 2 token IDs, got {count}")
    # Outcomes are ordered ["Up", "Down"]
    return [str(token_ids[0]), str(token_ids[1])]

"""
Configuration for the PredictOS SDK.

Gateways and the router receive a ``GatewayConfig``; they never read the
process environment themselves. ``from_env`` is the one place that does.
"""
import os
import urllib.parse
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigurationError

DEFAULT_TIMEOUT_MS = 120000
DEFAULT_MAX_RETRIES = 3

BLOCKRUN_API_URL = "https://blockrun.ai/api/v1/chat/completions"
OPENAI_API_URL = "https://api.openai.com/v1/responses"
XAI_API_URL = "https://api.x.ai/v1/responses"

# Base mainnet
BASE_NETWORK = "eip155:8453"
BASE_CHAIN_ID = 8453

POLYMARKET_CLOB_HOST = "https://clob.polymarket.com"
POLYGON_CHAIN_ID = 137


def validate_secure_url(url_name: str, url: str) -> str:
    """
    Require https:// unless the host is a loopback address.

    Args:
        url_name: Name of the setting, used in the error message
        url: URL to validate

    Returns:
        The URL unchanged

    Raises:
        ValueError: If the URL is not https and not local
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1", "::1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"{url_name} must use https:// for security (got: {parsed.scheme}://)")
    return url


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got: {value!r})")


class GatewayConfig(BaseModel):
    """Settings consumed by the provider gateways and the router."""

    model_config = ConfigDict(frozen=True)

    blockrun_wallet_key: Optional[str] = Field(default=None, repr=False)
    openai_api_key: Optional[str] = Field(default=None, repr=False)
    xai_api_key: Optional[str] = Field(default=None, repr=False)

    blockrun_api_url: str = BLOCKRUN_API_URL
    openai_api_url: str = OPENAI_API_URL
    xai_api_url: str = XAI_API_URL

    settlement_network: str = BASE_NETWORK
    settlement_chain_id: int = BASE_CHAIN_ID
    network_aliases: Tuple[str, ...] = ("base",)

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)

    @field_validator("blockrun_api_url", "openai_api_url", "xai_api_url")
    @classmethod
    def _require_https(cls, value: str, info) -> str:
        return validate_secure_url(info.field_name, value)

    @property
    def accepted_networks(self) -> Tuple[str, ...]:
        """Network identifiers accepted when selecting a payment option."""
        return (self.settlement_network,) + tuple(self.network_aliases)

    @classmethod
    def from_env(cls, **overrides) -> "GatewayConfig":
        """
        Build a config from environment variables.

        Reads BLOCKRUN_WALLET_KEY, OPENAI_API_KEY, XAI_API_KEY,
        PREDICTOS_TIMEOUT_MS and PREDICTOS_MAX_RETRIES. Keyword arguments
        override the environment.
        """
        values = {
            "blockrun_wallet_key": os.environ.get("BLOCKRUN_WALLET_KEY") or None,
            "openai_api_key": os.environ.get("OPENAI_API_KEY") or None,
            "xai_api_key": os.environ.get("XAI_API_KEY") or None,
            "timeout_ms": _env_int("PREDICTOS_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            "max_retries": _env_int("PREDICTOS_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        }
        values.update(overrides)
        return cls(**values)


class TradingConfig(BaseModel):
    """Settings for the Polymarket order-placement collaborator."""

    model_config = ConfigDict(frozen=True)

    private_key: str = Field(repr=False)
    proxy_address: str
    # 0 = EOA, 1 = Magic/Email, 2 = Browser Wallet
    signature_type: int = 1
    clob_host: str = POLYMARKET_CLOB_HOST
    chain_id: int = POLYGON_CHAIN_ID

    @classmethod
    def from_env(cls) -> "TradingConfig":
        """
        Build a trading config from POLYMARKET_* environment variables.

        Raises:
            ConfigurationError: If the private key or proxy address is missing
        """
        private_key = os.environ.get("POLYMARKET_WALLET_PRIVATE_KEY")
        proxy_address = os.environ.get("POLYMARKET_PROXY_WALLET_ADDRESS")
        if not private_key:
            raise ConfigurationError("POLYMARKET_WALLET_PRIVATE_KEY environment variable is required")
        if not proxy_address:
            raise ConfigurationError("POLYMARKET_PROXY_WALLET_ADDRESS environment variable is required")
        return cls(
            private_key=private_key,
            proxy_address=proxy_address,
            signature_type=_env_int("POLYMARKET_SIGNATURE_TYPE", 1),
        )

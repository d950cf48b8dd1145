"""
PredictOS SDK - multi-provider AI analysis for prediction markets.
"""
from .config import GatewayConfig, TradingConfig
from .exceptions import (
    ConfigurationError, MarketDataError, MarketNotFoundError,
    PredictOSError, TradingClientError
)
from .models import CallRequest, CallResult, PmType, RouterResponse, TokenUsage
from .router import AnalysisRouter, ProviderTag, route
from .version import __version__

__all__ = [
    "AnalysisRouter",
    "ProviderTag",
    "route",
    "GatewayConfig",
    "TradingConfig",
    "CallRequest",
    "CallResult",
    "RouterResponse",
    "TokenUsage",
    "PmType",
    "PredictOSError",
    "ConfigurationError",
    "MarketDataError",
    "MarketNotFoundError",
    "TradingClientError",
    "__version__",
]

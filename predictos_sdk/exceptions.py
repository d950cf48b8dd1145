"""
Exceptions for the PredictOS SDK.
"""


class PredictOSError(Exception):
    """Base exception for all PredictOS SDK errors."""

    # Consulted by the retry policy: terminal errors are never retried.
    terminal = False


class ConfigurationError(PredictOSError):
    """Raised when a required credential or setting is missing or invalid."""

    terminal = True


class MarketDataError(PredictOSError):
    """Raised when a market-data collaborator returns an error response."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class MarketNotFoundError(MarketDataError):
    """Raised when the requested event or market does not exist upstream."""


class TradingClientError(PredictOSError):
    """Raised when the trading client cannot be initialized."""

"""
Thread-safe rate-limited logging utilities.

Keeps a provider that is stuck returning 429 or 5xx from flooding the log
with identical retry warnings, while the first occurrence is still visible.
"""
import logging
import threading
from typing import Dict, Optional

from cachetools import TTLCache

# Configure logger
logger = logging.getLogger(__name__)

# One TTL cache per suppression interval; keys expire after that interval.
_log_caches: Dict[int, TTLCache] = {}
_log_caches_lock = threading.RLock()


def _cache_for(interval: int) -> TTLCache:
    cache = _log_caches.get(interval)
    if cache is None:
        cache = TTLCache(maxsize=256, ttl=interval)
        _log_caches[interval] = cache
    return cache


def rate_limited_log(
    message: str,
    level: str = "warning",
    interval: int = 60,
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message at most once per ``interval`` seconds, thread-safely.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between identical logs in seconds
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted, False if it was suppressed
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.warning)
    key = f"{level}:{message}"

    with _log_caches_lock:
        cache = _cache_for(interval)
        if key in cache:
            return False
        log_method(message)
        cache[key] = True
        return True


def reset_rate_limited_log() -> None:
    """Forget every suppressed message."""
    with _log_caches_lock:
        _log_caches.clear()

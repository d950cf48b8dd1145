"""
Tests for the shared rate-limited logging implementation.
"""
import threading
from unittest.mock import MagicMock, patch

from cachetools import TTLCache

from predictos_sdk.gateway._rate_limited_log import rate_limited_log, reset_rate_limited_log


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestRateLimitedLog:
    """Tests for the rate-limited logging implementation."""

    def test_first_message_logged_then_suppressed(self):
        mock_logger = MagicMock()

        assert rate_limited_log("BlockRun error: 503", logger_instance=mock_logger) is True
        assert rate_limited_log("BlockRun error: 503", logger_instance=mock_logger) is False

        mock_logger.warning.assert_called_once_with("BlockRun error: 503")

    def test_level_and_message_are_part_of_the_key(self):
        mock_logger = MagicMock()

        rate_limited_log("Test message", level="warning", logger_instance=mock_logger)
        rate_limited_log("Test message", level="error", logger_instance=mock_logger)
        rate_limited_log("Different message", level="warning", logger_instance=mock_logger)

        mock_logger.error.assert_called_once_with("Test message")
        assert mock_logger.warning.call_count == 2

    def test_unknown_level_falls_back_to_warning(self):
        mock_logger = MagicMock(spec=["warning"])
        rate_limited_log("odd", level="verbose", logger_instance=mock_logger)
        mock_logger.warning.assert_called_once_with("odd")

    def test_message_logged_again_after_interval(self):
        timer = FakeTimer()
        caches = {60: TTLCache(maxsize=256, ttl=60, timer=timer)}
        mock_logger = MagicMock()

        with patch("predictos_sdk.gateway._rate_limited_log._log_caches", caches):
            rate_limited_log("Grok error", logger_instance=mock_logger)
            timer.now = 59
            rate_limited_log("Grok error", logger_instance=mock_logger)
            timer.now = 61
            rate_limited_log("Grok error", logger_instance=mock_logger)

        assert mock_logger.warning.call_count == 2

    def test_intervals_tracked_separately(self):
        mock_logger = MagicMock()

        rate_limited_log("msg", interval=60, logger_instance=mock_logger)
        rate_limited_log("msg", interval=5, logger_instance=mock_logger)

        assert mock_logger.warning.call_count == 2

    def test_reset_forgets_suppressed_messages(self):
        mock_logger = MagicMock()

        rate_limited_log("msg", logger_instance=mock_logger)
        reset_rate_limited_log()
        rate_limited_log("msg", logger_instance=mock_logger)

        assert mock_logger.warning.call_count == 2

    def test_concurrent_callers_log_once(self):
        mock_logger = MagicMock()
        barrier = threading.Barrier(10)
        results = []

        def worker():
            barrier.wait()
            results.append(rate_limited_log("OpenAI error: 429", logger_instance=mock_logger))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        mock_logger.warning.assert_called_once()

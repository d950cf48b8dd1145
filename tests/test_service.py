"""
Tests for the service boundary: dispatch, get-events and the limit-order bot.
"""
import json
from unittest.mock import MagicMock, patch

import pytest

from predictos_sdk.config import TradingConfig
from predictos_sdk.exceptions import MarketDataError, MarketNotFoundError
from predictos_sdk.markets import GammaClient, TradingContext
from predictos_sdk.models import PmType
from predictos_sdk.service import (
    CORS_HEADERS, LimitOrderBot, create_handlers, detect_pm_type, dispatch,
    extract_kalshi_event_ticker, extract_polymarket_event_slug, handle_get_events
)
from conftest import TEST_PRIV_KEY

# 2023-11-14 22:13:20 UTC; next slot starts at 22:15:00
NOW = 1700000000
NEXT_SLOT = 1700000100


class TestDispatch:

    def test_preflight(self):
        handler = MagicMock()
        response = dispatch(handler, "OPTIONS", None)

        assert response.status == 204
        assert response.body is None
        assert response.headers == CORS_HEADERS
        handler.assert_not_called()

    def test_method_not_allowed(self):
        response = dispatch(MagicMock(), "GET", None)
        assert response.status == 405
        assert response.json() == {"success": False, "error": "Method not allowed. Use POST."}

    def test_invalid_json(self):
        response = dispatch(MagicMock(), "POST", "{not json")
        assert response.status == 400
        assert response.json()["error"] == "Invalid JSON in request body"

    def test_handler_result(self):
        handler = MagicMock(return_value=(201, {"success": True}))

        response = dispatch(handler, "post", '{"a": 1}')

        handler.assert_called_once_with({"a": 1})
        assert response.status == 201
        assert response.json() == {"success": True}
        assert response.headers["Content-Type"] == "application/json"
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_handler_exception(self):
        handler = MagicMock(side_effect=RuntimeError("kaboom"))

        response = dispatch(handler, "POST", "{}")

        assert response.status == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "kaboom"
        assert "requestId" in body["metadata"]


class TestUrlParsing:

    @pytest.mark.parametrize("url,expected", [
        ("https://kalshi.com/markets/kxbtc/bitcoin/kxbtc-25dec", PmType.KALSHI),
        ("https://polymarket.com/event/fed-decision-in-december", PmType.POLYMARKET),
        ("https://example.com/event/x", None),
    ])
    def test_detect_pm_type(self, url, expected):
        assert detect_pm_type(url) is expected

    def test_kalshi_ticker(self):
        assert extract_kalshi_event_ticker("https://kalshi.com/markets/kxbtc/bitcoin/kxbtc-25dec/") == "KXBTC-25DEC"

    def test_polymarket_slug(self):
        assert extract_polymarket_event_slug(
            "https://polymarket.com/event/fed-decision?tid=123"
        ) == "fed-decision"


class TestGetEvents:

    def test_kalshi(self):
        dflow = MagicMock()
        dflow.get_kalshi_markets_by_event.return_value = [{"ticker": "KXBTC-25DEC-T1"}]

        status, body = handle_get_events({"url": "https://kalshi.com/markets/kxbtc/kxbtc-25dec"}, dflow=dflow)

        assert status == 200
        dflow.get_kalshi_markets_by_event.assert_called_once_with("KXBTC-25DEC")
        assert body["eventIdentifier"] == "KXBTC-25DEC"
        assert body["pmType"] == "Kalshi"
        assert body["marketsCount"] == 1
        assert body["dataProvider"] == "dflow"
        assert "requestId" in body["metadata"]

    def test_polymarket(self):
        gamma = MagicMock()
        gamma.get_event_markets.return_value = [{"id": "1"}, {"id": "2"}]

        status, body = handle_get_events({"url": "https://polymarket.com/event/fed-decision"}, gamma=gamma)

        assert status == 200
        assert body["pmType"] == "Polymarket"
        assert body["dataProvider"] == "gamma"
        assert body["marketsCount"] == 2

    def test_missing_url(self):
        assert handle_get_events({}) == (400, {"success": False, "error": "Missing required parameter: 'url'"})

    def test_unknown_market_type(self):
        status, body = handle_get_events({"url": "https://example.com/x"})
        assert status == 400
        assert "Could not detect prediction market type" in body["error"]

    def test_not_found(self):
        gamma = MagicMock()
        gamma.get_event_markets.side_effect = MarketNotFoundError("Event 'x' not found on Polymarket.", 404)

        status, body = handle_get_events({"url": "https://polymarket.com/event/x"}, gamma=gamma)

        assert status == 404
        assert body["error"] == "Event 'x' not found on Polymarket."

    def test_upstream_failure(self):
        dflow = MagicMock()
        dflow.get_kalshi_markets_by_event.side_effect = MarketDataError("DFlow API error: 503", 503)

        status, body = handle_get_events({"url": "https://kalshi.com/markets/e"}, dflow=dflow)

        assert status == 502
        assert body["error"] == "Failed to fetch markets: DFlow API error: 503"

    @pytest.mark.parametrize("url,mocked", [
        ("https://polymarket.com/event/fed-decision", "https://gamma-api.polymarket.com/events/slug/fed-decision"),
        ("https://kalshi.com/markets/kxbtc/kxbtc-25dec", "https://prediction-markets-api.dflow.net/api/v1/event/KXBTC-25DEC"),
    ])
    def test_non_json_upstream_body(self, monkeypatch, requests_mock, url, mocked):
        monkeypatch.delenv("DFLOW_API_URL", raising=False)
        requests_mock.get(mocked, text="<html>cloudflare</html>")

        status, body = handle_get_events({"url": url})

        assert status == 502
        assert body["error"].startswith("Failed to fetch markets: Invalid JSON from")

    def test_empty_event(self):
        gamma = MagicMock()
        gamma.get_event_markets.return_value = []

        status, body = handle_get_events({"url": "https://polymarket.com/event/empty"}, gamma=gamma)

        assert status == 404
        assert body["error"] == "No markets found for 'empty' on Polymarket."


class TestLimitOrderBot:

    @pytest.fixture
    def clob(self):
        client = MagicMock()
        client.post_order.return_value = {"orderID": "0xorder", "status": "live"}
        return client

    @pytest.fixture
    def gamma(self):
        gamma = MagicMock(spec=GammaClient)
        gamma.get_market_by_slug.return_value = {
            "title": "Bitcoin Up or Down - 10:15PM ET",
            "clobTokenIds": '["up-token", "down-token"]',
        }
        return gamma

    @pytest.fixture
    def bot(self, clob, gamma):
        config = TradingConfig(private_key=TEST_PRIV_KEY, proxy_address="0x" + "ab" * 20)
        context = TradingContext(config, client_factory=lambda _config: clob)
        return LimitOrderBot(context=context, gamma=gamma, clock=lambda: NOW)

    def test_places_straddle(self, bot, gamma, clob):
        status, body = bot.handle({"asset": "btc", "price": 50, "sizeUsd": 10})

        assert status == 200
        assert body["success"] is True
        data = body["data"]
        assert data["asset"] == "BTC"
        assert data["pricePercent"] == pytest.approx(50)
        assert data["sizeUsd"] == 10
        market = data["market"]
        assert market["marketSlug"] == f"btc-updown-15m-{NEXT_SLOT}"
        assert market["marketStartTime"] == "22:15:00 UTC"
        assert market["targetTimestamp"] == NEXT_SLOT
        assert market["marketTitle"] == "Bitcoin Up or Down - 10:15PM ET"
        assert market["ordersPlaced"]["up"] == {"success": True, "orderId": "0xorder", "status": "live"}
        assert market["ordersPlaced"]["down"]["success"] is True
        gamma.get_market_by_slug.assert_called_once_with(f"btc-updown-15m-{NEXT_SLOT}")
        assert [c[0][0].size for c in clob.create_order.call_args_list] == [20, 20]
        assert any(entry["level"] == "SUCCESS" for entry in body["logs"])
        json.dumps(body)

    def test_defaults(self, bot, clob):
        status, body = bot.handle({"asset": "ETH"})

        assert status == 200
        assert body["data"]["pricePercent"] == pytest.approx(48)
        assert body["data"]["sizeUsd"] == 25
        order_args = clob.create_order.call_args[0][0]
        assert order_args.price == 0.48
        assert order_args.size == 52

    @pytest.mark.parametrize("body", [{}, {"asset": "DOGE"}, {"asset": 7}, None])
    def test_invalid_asset(self, bot, body):
        status, payload = bot.handle(body)

        assert status == 400
        assert payload["error"] == "Invalid asset. Must be one of: BTC, SOL, ETH, XRP"
        assert payload["logs"][0]["level"] == "ERROR"

    def test_invalid_price(self, bot):
        status, payload = bot.handle({"asset": "BTC", "price": "cheap"})
        assert status == 400
        assert payload["error"] == "Invalid 'price'. Must be a non-negative number"

    def test_market_not_created_yet(self, bot, gamma, clob):
        gamma.get_market_by_slug.return_value = None

        status, body = bot.handle({"asset": "SOL"})

        assert status == 200
        assert body["success"] is False
        assert body["data"]["market"]["error"] == "Market not found - may not be created yet"
        clob.create_order.assert_not_called()

    def test_market_lookup_failure(self, bot, gamma):
        gamma.get_market_by_slug.side_effect = MarketDataError("Gamma API error: 500", 500)

        status, body = bot.handle({"asset": "SOL"})

        assert status == 200
        assert body["success"] is False
        assert body["data"]["market"]["error"] == "Gamma API error: 500"

    def test_market_lookup_non_json(self, clob, requests_mock):
        requests_mock.get(
            f"https://gamma-api.polymarket.com/markets/slug/btc-updown-15m-{NEXT_SLOT}",
            text="<html>cloudflare</html>",
        )
        config = TradingConfig(private_key=TEST_PRIV_KEY, proxy_address="0x" + "ab" * 20)
        context = TradingContext(config, client_factory=lambda _config: clob)
        bot = LimitOrderBot(context=context, gamma=GammaClient(), clock=lambda: NOW)

        response = dispatch(bot.handle, "POST", '{"asset": "BTC"}')

        assert response.status == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["market"]["error"].startswith("Invalid JSON from Gamma API")
        assert [entry["level"] for entry in body["logs"]][-1] == "ERROR"
        clob.create_order.assert_not_called()

    def test_missing_token_ids(self, bot, gamma, clob):
        gamma.get_market_by_slug.return_value = {"title": "No tokens"}

        status, body = bot.handle({"asset": "XRP"})

        assert status == 200
        assert body["success"] is False
        assert body["error"] == "Token extraction failed: No clobTokenIds found in market data"
        assert body["data"]["market"]["marketTitle"] == "No tokens"
        clob.create_order.assert_not_called()

    def test_order_failure_reported(self, bot, clob):
        clob.post_order.side_effect = RuntimeError("insufficient balance")

        status, body = bot.handle({"asset": "BTC"})

        assert status == 200
        assert body["data"]["market"]["ordersPlaced"]["up"] == {
            "success": False, "errorMsg": "insufficient balance"
        }

    def test_missing_trading_config(self, monkeypatch, gamma):
        monkeypatch.delenv("POLYMARKET_WALLET_PRIVATE_KEY", raising=False)
        bot = LimitOrderBot(gamma=gamma, clock=lambda: NOW)

        status, body = bot.handle({"asset": "BTC"})

        assert status == 500
        assert body["error"] == (
            "Client initialization failed: POLYMARKET_WALLET_PRIVATE_KEY environment variable is required"
        )
        gamma.get_market_by_slug.assert_not_called()


def test_create_handlers(gateway_config):
    handlers = create_handlers(gateway_config)

    assert set(handlers) == {
        "get-events",
        "event-analysis-agent",
        "analysis-aggregator-agent",
        "polymarket-up-down-15-markets-limit-order-bot",
    }
    with patch("predictos_sdk.service.DFlowClient") as mock_dflow:
        mock_dflow.return_value.get_kalshi_markets_by_event.return_value = [{"ticker": "T"}]
        response = dispatch(handlers["get-events"], "POST", '{"url": "https://kalshi.com/markets/abc"}')
    assert response.status == 200
    assert response.json()["eventIdentifier"] == "ABC"

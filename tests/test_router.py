"""
Tests for model routing and the analysis router envelope.
"""
import threading
from unittest.mock import MagicMock

import pytest

from predictos_sdk.exceptions import ConfigurationError
from predictos_sdk.gateway.exceptions import UpstreamServerError
from predictos_sdk.models import CallRequest, CallResult, TokenUsage
from predictos_sdk.providers import BlockRunGateway, GrokGateway, OpenAIGateway
from predictos_sdk.router import AnalysisRouter, ProviderTag, route
from conftest import BLOCKRUN_URL, chat_completion, encode_challenge


@pytest.mark.parametrize("model,expected", [
    ("blockrun/gpt-4o", ProviderTag.BLOCKRUN),
    ("blockrun/grok-3", ProviderTag.BLOCKRUN),
    ("blockrun/some-new-model", ProviderTag.BLOCKRUN),
    ("gpt-5.2", ProviderTag.OPENAI),
    ("gpt-4.1-mini", ProviderTag.OPENAI),
    ("gpt-4o", ProviderTag.OPENAI),
    ("grok-4", ProviderTag.GROK),
    ("grok-4-1-fast-reasoning", ProviderTag.GROK),
    ("anything-else", ProviderTag.GROK),
])
def test_route(model, expected):
    assert route(model) is expected


def _result(**overrides):
    fields = {
        "created_at": 1700000000,
        "id": "resp_1",
        "model": "gpt-4.1",
        "output_text": "{}",
        "usage": TokenUsage(input_tokens=5, output_tokens=7, total_tokens=12),
    }
    fields.update(overrides)
    return CallResult(**fields)


@pytest.fixture
def gateways():
    return {tag: MagicMock(name=tag.value) for tag in ProviderTag}


class TestAnalysisRouter:

    def test_dispatches_to_routed_gateway(self, gateway_config, gateways):
        gateways[ProviderTag.OPENAI].call.return_value = _result()
        router = AnalysisRouter(gateway_config, gateways=gateways)
        request = CallRequest(prompt="p", model="gpt-4.1")

        assert router.call(request).id == "resp_1"

        gateways[ProviderTag.OPENAI].call.assert_called_once_with(request)
        gateways[ProviderTag.GROK].call.assert_not_called()
        gateways[ProviderTag.BLOCKRUN].call.assert_not_called()

    def test_success_envelope(self, gateway_config, gateways):
        gateways[ProviderTag.GROK].call.return_value = _result(
            model="grok-4", metadata={"grok": {"citations": ["https://x.com/1"]}}
        )
        router = AnalysisRouter(gateway_config, gateways=gateways)

        response = router.analyze(CallRequest(prompt="p", model="grok-4"))

        assert response.success is True
        assert response.error is None
        assert response.data.model == "grok-4"
        assert response.metadata.model == "grok-4"
        assert response.metadata.tokens_used == 12
        assert response.metadata.payment_cost is None
        assert response.metadata.processing_time_ms >= 0

        wire = response.to_wire()
        assert wire["success"] is True
        assert set(wire["metadata"]) == {"requestId", "timestamp", "processingTimeMs", "model", "tokensUsed"}
        assert wire["metadata"]["timestamp"].endswith("Z")

    def test_payment_cost_in_metadata(self, gateway_config, gateways):
        gateways[ProviderTag.BLOCKRUN].call.return_value = _result(
            model="openai/gpt-4o", metadata={"blockrun": {"payment_cost": "$0.001000"}}
        )
        router = AnalysisRouter(gateway_config, gateways=gateways)

        response = router.analyze(CallRequest(prompt="p", model="blockrun/gpt-4o"))

        assert response.to_wire()["metadata"]["paymentCost"] == "$0.001000"

    def test_provider_failure_envelope(self, gateway_config, gateways):
        gateways[ProviderTag.OPENAI].call.side_effect = UpstreamServerError("OpenAI API error: 503", 503)
        router = AnalysisRouter(gateway_config, gateways=gateways)

        response = router.analyze(CallRequest(prompt="p", model="gpt-4.1"))

        assert response.success is False
        assert response.data is None
        assert response.error == "OpenAI API error: 503"
        assert response.metadata.model == "gpt-4.1"
        assert "data" not in response.to_wire()

    def test_configuration_error_envelope(self, gateway_config, gateways):
        gateways[ProviderTag.GROK].call.side_effect = ConfigurationError("XAI_API_KEY is not set")
        router = AnalysisRouter(gateway_config, gateways=gateways)

        response = router.analyze(CallRequest(prompt="p", model="grok-4"))

        assert response.success is False
        assert response.error == "XAI_API_KEY is not set"

    def test_unexpected_error_never_escapes(self, gateway_config, gateways):
        gateways[ProviderTag.GROK].call.side_effect = KeyError("boom")
        router = AnalysisRouter(gateway_config, gateways=gateways)

        response = router.analyze(CallRequest(prompt="p", model="grok-4"))

        assert response.success is False
        assert "boom" in response.error

    def test_gateways_created_lazily_once(self, gateway_config):
        router = AnalysisRouter(gateway_config)

        first = router.gateway_for(ProviderTag.BLOCKRUN)

        assert isinstance(first, BlockRunGateway)
        assert router.gateway_for(ProviderTag.BLOCKRUN) is first
        assert isinstance(router.gateway_for(ProviderTag.OPENAI), OpenAIGateway)
        assert isinstance(router.gateway_for(ProviderTag.GROK), GrokGateway)

    def test_concurrent_first_use_shares_gateway(self, gateway_config):
        router = AnalysisRouter(gateway_config)
        seen = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            seen.append(router.gateway_for(ProviderTag.OPENAI))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(g) for g in seen}) == 1

    def test_close_closes_gateways(self, gateway_config, gateways):
        router = AnalysisRouter(gateway_config, gateways=gateways)
        router.close()
        for gateway in gateways.values():
            gateway.close.assert_called_once()

    def test_end_to_end_paid_call(self, gateway_config, requests_mock):
        requests_mock.post(BLOCKRUN_URL, [
            {"status_code": 402, "headers": {"payment-required": encode_challenge()}},
            {"status_code": 200, "json": chat_completion('{"ticker": "X"}', total_tokens=77)},
        ])
        router = AnalysisRouter(gateway_config)

        wire = router.analyze(CallRequest(prompt="p", model="blockrun/gpt-4o")).to_wire()

        assert wire["success"] is True
        assert wire["data"]["output_text"] == '{"ticker": "X"}'
        assert wire["metadata"]["tokensUsed"] == 77
        assert wire["metadata"]["paymentCost"] == "$0.001000"

"""
Pytest fixtures for the PredictOS SDK tests.
"""
import base64
import json
import time

import pytest
from eth_account import Account

from predictos_sdk.config import GatewayConfig
from predictos_sdk.gateway._rate_limited_log import reset_rate_limited_log

TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_ADDRESS = Account.from_key(TEST_PRIV_KEY).address

# USDC on Base
TEST_USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
TEST_PAY_TO = "0x1234567890123456789012345678901234567890"

BLOCKRUN_URL = "https://blockrun.ai/api/v1/chat/completions"
OPENAI_URL = "https://api.openai.com/v1/responses"
XAI_URL = "https://api.x.ai/v1/responses"


# Make time.sleep instantaneous so retries don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_log_suppression():
    reset_rate_limited_log()
    yield
    reset_rate_limited_log()


@pytest.fixture
def sleep_calls(monkeypatch):
    """Record every time.sleep argument instead of sleeping."""
    calls = []
    monkeypatch.setattr(time, "sleep", calls.append)
    return calls


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        blockrun_wallet_key=TEST_PRIV_KEY,
        openai_api_key="sk-test",
        xai_api_key="xai-test",
        max_retries=3,
    )


def payment_option(network="eip155:8453", amount="1000", **overrides):
    option = {
        "scheme": "exact",
        "network": network,
        "asset": TEST_USDC,
        "amount": amount,
        "payTo": TEST_PAY_TO,
        "maxTimeoutSeconds": 300,
        "extra": {"name": "USD Coin", "version": "2"},
    }
    option.update(overrides)
    return option


def encode_challenge(*options, x402_version=2):
    """Base64 ``payment-required`` header value offering ``options``."""
    challenge = {"x402Version": x402_version, "accepts": list(options or [payment_option()])}
    return base64.b64encode(json.dumps(challenge).encode("utf-8")).decode("ascii")


def chat_completion(content, model="openai/gpt-4o", total_tokens=30):
    return {
        "id": "chatcmpl-1",
        "created": 1700000000,
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": total_tokens - 10, "total_tokens": total_tokens},
    }


def responses_api(content, model="gpt-4.1", total_tokens=42):
    return {
        "id": "resp_1",
        "created_at": 1700000000,
        "model": model,
        "status": "completed",
        "output": [
            {"type": "web_search_call", "id": "ws_1", "status": "completed"},
            {
                "type": "message",
                "id": "msg_1",
                "role": "assistant",
                "status": "completed",
                "content": [{"type": "output_text", "text": content}],
            },
        ],
        "usage": {"input_tokens": 12, "output_tokens": total_tokens - 12, "total_tokens": total_tokens},
    }

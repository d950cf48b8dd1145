#!/usr/bin/env python3
"""
Simple example of using the PredictOS SDK.
"""
import os
import sys

from predictos_sdk import AnalysisRouter, CallRequest, GatewayConfig


def main():
    """
    Send one prompt through the analysis router.

    The provider is picked from the model name: "blockrun/..." pays per
    request from BLOCKRUN_WALLET_KEY, "gpt-..." uses OPENAI_API_KEY and
    anything else goes to Grok with XAI_API_KEY.
    """
    model = os.environ.get("MODEL", "blockrun/gpt-4o-mini")

    router = AnalysisRouter(GatewayConfig.from_env())
    request = CallRequest(
        system_prompt="You are a concise assistant. Answer in JSON.",
        prompt='What is the capital of France? Reply as {"answer": "..."}',
        model=model,
    )

    try:
        response = router.analyze(request)
    finally:
        router.close()

    if not response.success:
        print(f"Call failed: {response.error}")
        sys.exit(1)

    print(f"Answer: {response.data.output_text}")
    print(f"Model: {response.metadata.model}")
    print(f"Tokens used: {response.metadata.tokens_used}")
    if response.metadata.payment_cost:
        print(f"Paid: {response.metadata.payment_cost}")


if __name__ == "__main__":
    main()

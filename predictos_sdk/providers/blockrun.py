"""
BlockRun gateway.

BlockRun relays OpenAI-compatible chat completions to many upstream model
vendors and charges per request through the x402 payment handshake, paid in
USDC on Base from the configured wallet. There is no API key.
"""
from typing import Any, Dict, List, Optional

import requests

from ..exceptions import ConfigurationError
from ..gateway.exceptions import GatewayError
from ..gateway.http import fetch_with_timeout
from ..gateway.normalize import normalize_response, to_call_result
from ..models import CallRequest, CallResult, ResponseFormat
from ..payment.x402 import (
    PAYMENT_REQUIRED_HEADER, PAYMENT_SIGNATURE_HEADER,
    create_payment_header, format_usdc_cost, parse_payment_required
)
from .base import ProviderGateway

# Alias -> provider-qualified model id
BLOCKRUN_MODELS: Dict[str, str] = {
    # OpenAI
    "blockrun/gpt-4o": "openai/gpt-4o",
    "blockrun/gpt-4o-mini": "openai/gpt-4o-mini",
    "blockrun/gpt-4.1": "openai/gpt-4.1",
    "blockrun/gpt-5": "openai/gpt-5",
    "blockrun/o1": "openai/o1",
    "blockrun/o3-mini": "openai/o3-mini",
    # Anthropic
    "blockrun/claude-sonnet-4": "anthropic/claude-sonnet-4",
    "blockrun/claude-opus-4": "anthropic/claude-opus-4",
    "blockrun/claude-haiku": "anthropic/claude-3-5-haiku-latest",
    # xAI
    "blockrun/grok-3": "xai/grok-3",
    "blockrun/grok-3-fast": "xai/grok-3-fast",
    "blockrun/grok-3-mini": "xai/grok-3-mini",
    # Google
    "blockrun/gemini-2.5-pro": "google/gemini-2.5-pro-preview-06-05",
    "blockrun/gemini-2.5-flash": "google/gemini-2.5-flash-preview-05-20",
    # DeepSeek
    "blockrun/deepseek-chat": "deepseek/deepseek-chat",
    "blockrun/deepseek-reasoner": "deepseek/deepseek-reasoner",
    # Qwen
    "blockrun/qwen-max": "qwen/qwen-max",
    "blockrun/qwen-plus": "qwen/qwen-plus",
}

BLOCKRUN_PREFIX = "blockrun/"


def is_blockrun_model(model: str) -> bool:
    """Whether ``model`` is served through BlockRun."""
    return model.startswith(BLOCKRUN_PREFIX) or model in BLOCKRUN_MODELS


def resolve_blockrun_model(model: str) -> str:
    """
    Map a BlockRun alias to its provider-qualified model id.

    Unknown names (including already-qualified ids such as "openai/gpt-4o")
    are returned unchanged.
    """
    return BLOCKRUN_MODELS.get(model, model)


def default_model_list() -> List[Dict[str, str]]:
    """Model descriptors built from the alias table."""
    models = []
    for alias, model_id in BLOCKRUN_MODELS.items():
        provider, _, name = model_id.partition("/")
        models.append({
            "id": alias,
            "name": name,
            "provider": provider,
            "description": f"{provider} {name} via BlockRun x402",
        })
    return models


class BlockRunGateway(ProviderGateway):
    """Payment-gated gateway to the BlockRun chat completions endpoint."""

    tag = "blockrun"
    display_name = "BlockRun"

    @property
    def url(self) -> str:
        return self.config.blockrun_api_url

    @property
    def models_url(self) -> str:
        base = self.url.rsplit("/chat/completions", 1)[0]
        return f"{base}/models"

    def check_credentials(self) -> None:
        if not self.config.blockrun_wallet_key:
            raise ConfigurationError(
                "BLOCKRUN_WALLET_KEY is not set. BlockRun uses wallet-based micropayments "
                "instead of API keys; set a Base chain private key (0x-prefixed hex)."
            )

    def build_payload(self, request: CallRequest) -> Dict[str, Any]:
        model = resolve_blockrun_model(request.model)
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.prompt},
            ],
        }
        if request.response_format == ResponseFormat.JSON_OBJECT.value:
            payload["response_format"] = {"type": "json_object"}
        # Live search is an xAI feature
        if request.enable_search and model.startswith("xai/"):
            payload["search"] = True
        return payload

    def _attempt(self, request: CallRequest, payload: Dict[str, Any]) -> CallResult:
        response = self._send(payload)
        payment_cost: Optional[str] = None

        if response.status_code == 402:
            requirement = parse_payment_required(
                response.headers.get(PAYMENT_REQUIRED_HEADER),
                self.config.settlement_network,
                self.config.network_aliases,
            )
            payment_cost = format_usdc_cost(requirement.atomic_amount)
            self.logger.info(f"BlockRun payment required: {payment_cost}")

            signed = create_payment_header(
                self.config.blockrun_wallet_key,
                requirement,
                self.url,
                self.config.settlement_chain_id,
            )
            response = self._send(payload, extra_headers={PAYMENT_SIGNATURE_HEADER: signed.header})
            self._raise_for_status(response, context="payment failed")
            self.logger.info(f"BlockRun request successful, cost: {payment_cost}")
        else:
            self._raise_for_status(response)

        raw = self._read_json(response)
        return to_call_result(normalize_response(self.tag, raw, payment_cost=payment_cost))

    def list_models(self) -> List[Dict[str, str]]:
        """
        List the models BlockRun currently serves.

        Falls back to the alias table when the listing cannot be fetched or
        parsed.

        Returns:
            Descriptors with ``id``, ``name``, ``provider`` and ``description``
        """
        try:
            response = fetch_with_timeout(
                self.session,
                "GET",
                self.models_url,
                timeout_ms=self.config.timeout_ms,
                headers={"Accept": "application/json"},
            )
            if not response.ok:
                self.logger.warning(
                    f"Failed to fetch BlockRun models ({response.status_code}), using defaults"
                )
                return default_model_list()
            data = response.json()
            entries = data.get("data") or data.get("models") or []
            return [
                {
                    "id": f"{BLOCKRUN_PREFIX}{m['id']}",
                    "name": m.get("name") or m["id"],
                    "provider": m.get("provider") or "unknown",
                    "description": m.get("description") or "",
                }
                for m in entries
            ]
        except (GatewayError, requests.RequestException, ValueError, AttributeError, KeyError, TypeError) as e:
            self.logger.warning(f"Error fetching BlockRun models ({e}), using defaults")
            return default_model_list()

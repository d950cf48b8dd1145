"""
OpenAI gateway (Responses API).
"""
from typing import Any, Dict

from ..exceptions import ConfigurationError
from ..gateway.normalize import normalize_response, to_call_result
from ..models import CallRequest, CallResult, ResponseFormat
from .base import ProviderGateway


class OpenAIGateway(ProviderGateway):
    """Bearer-authenticated gateway to ``/v1/responses``."""

    tag = "openai"
    display_name = "OpenAI"

    @property
    def url(self) -> str:
        return self.config.openai_api_url

    def check_credentials(self) -> None:
        if not self.config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")

    def request_headers(self) -> Dict[str, str]:
        headers = super().request_headers()
        headers["Authorization"] = f"Bearer {self.config.openai_api_key}"
        return headers

    def build_payload(self, request: CallRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model,
            "input": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.prompt},
            ],
        }
        if request.response_format == ResponseFormat.JSON_OBJECT.value:
            payload["text"] = {"format": {"type": "json_object"}}
        if "web_search" in request.tools:
            payload["tools"] = [{"type": "web_search"}]
        return payload

    def _attempt(self, request: CallRequest, payload: Dict[str, Any]) -> CallResult:
        response = self._send(payload)
        self._raise_for_status(response)
        raw = self._read_json(response)
        return to_call_result(normalize_response(self.tag, raw))

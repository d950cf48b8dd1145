"""
Analysis request router.

Picks the provider gateway for a model identifier and wraps the outcome in a
uniform response envelope.
"""
import logging
import threading
import time
from enum import Enum
from typing import Dict, Optional

import requests

from .config import GatewayConfig
from .exceptions import PredictOSError
from .models import CallRequest, CallResult, RouterResponse
from .providers import BlockRunGateway, GrokGateway, OpenAIGateway, ProviderGateway, is_blockrun_model
from .utils import build_metadata

logger = logging.getLogger(__name__)

OPENAI_MODELS = ["gpt-5.2", "gpt-5.1", "gpt-5-nano", "gpt-4.1", "gpt-4.1-mini"]


class ProviderTag(str, Enum):
    BLOCKRUN = "blockrun"
    OPENAI = "openai"
    GROK = "grok"


_GATEWAY_CLASSES = {
    ProviderTag.BLOCKRUN: BlockRunGateway,
    ProviderTag.OPENAI: OpenAIGateway,
    ProviderTag.GROK: GrokGateway,
}


def is_openai_model(model: str) -> bool:
    return model in OPENAI_MODELS or model.startswith("gpt-")


def route(model: str) -> ProviderTag:
    """
    Choose the provider for ``model``. First matching rule wins.

    1. BlockRun: "blockrun/" prefix or a BlockRun alias
    2. OpenAI: allow-listed model or "gpt-" prefix
    3. Grok otherwise
    """
    if is_blockrun_model(model):
        return ProviderTag.BLOCKRUN
    if is_openai_model(model):
        return ProviderTag.OPENAI
    return ProviderTag.GROK


class AnalysisRouter:
    """
    Routes call requests to provider gateways.

    Gateways are created on first use and then reused, one per provider.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        gateways: Optional[Dict[ProviderTag, ProviderGateway]] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the router.

        Args:
            config: Gateway settings (read from the environment if omitted)
            gateways: Pre-built gateways keyed by tag, mainly for tests
            session: HTTP session shared by lazily created gateways
            logger: Logger to use
        """
        self.config = config or GatewayConfig.from_env()
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self._gateways: Dict[ProviderTag, ProviderGateway] = dict(gateways or {})
        self._gateways_lock = threading.Lock()

    def gateway_for(self, tag: ProviderTag) -> ProviderGateway:
        """Return the gateway for ``tag``, creating it on first use."""
        with self._gateways_lock:
            gateway = self._gateways.get(tag)
            if gateway is None:
                gateway = _GATEWAY_CLASSES[tag](self.config, session=self.session)
                self._gateways[tag] = gateway
            return gateway

    def call(self, request: CallRequest) -> CallResult:
        """
        Route ``request`` and return the provider's normalized result.

        Raises:
            PredictOSError: Whatever the gateway raised
        """
        tag = route(request.model)
        self.logger.info(f"Routing model {request.model} to {tag.value}")
        return self.gateway_for(tag).call(request)

    def analyze(self, request: CallRequest) -> RouterResponse:
        """
        Route ``request`` and wrap the outcome in an envelope. Never raises.

        Returns:
            RouterResponse with ``success`` set, the result or the error
            message, and metadata (request id, timestamp, elapsed time, model,
            token usage and payment cost when known)
        """
        start_time = time.monotonic()
        try:
            result = self.call(request)
        except (PredictOSError, requests.RequestException) as e:
            self.logger.error(f"Analysis call for {request.model} failed: {e}")
            return self._failure(start_time, request, str(e))
        except Exception as e:
            self.logger.exception(f"Unexpected error routing {request.model}")
            return self._failure(start_time, request, str(e) or type(e).__name__)

        return RouterResponse(
            success=True,
            data=result,
            metadata=build_metadata(
                start_time,
                model=result.model,
                tokens_used=result.usage.total_tokens,
                payment_cost=result.payment_cost,
            ),
        )

    @staticmethod
    def _failure(start_time: float, request: CallRequest, error: str) -> RouterResponse:
        return RouterResponse(
            success=False,
            error=error,
            metadata=build_metadata(start_time, model=request.model),
        )

    def close(self) -> None:
        with self._gateways_lock:
            for gateway in self._gateways.values():
                gateway.close()
            self._gateways.clear()

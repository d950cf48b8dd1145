"""
Common request handling for the analysis agents.
"""
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import ValidationError

from ..models import CallRequest, MarketAnalysis, PmType
from ..router import AnalysisRouter
from ..utils import build_metadata

HandlerResult = Tuple[int, Dict[str, Any]]

PM_TYPES = tuple(t.value for t in PmType)


class RequestValidationError(ValueError):
    """Raised when an agent request body is missing or has invalid fields."""


def error_body(message: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message}
    if metadata is not None:
        body["metadata"] = metadata
    return body


class AnalysisAgent(ABC):
    """
    Base class for agents that turn a request body into one routed model call
    and parse the model's JSON answer.
    """

    #: Model the parsed answer is validated against
    result_model: Type[MarketAnalysis] = MarketAnalysis

    def __init__(self, router: Optional[AnalysisRouter] = None, logger: Optional[logging.Logger] = None):
        self.router = router or AnalysisRouter()
        self.logger = logger or logging.getLogger(type(self).__module__)

    @abstractmethod
    def build_request(self, body: Dict[str, Any]) -> CallRequest:
        """
        Validate ``body`` and build the call request.

        Raises:
            RequestValidationError: If a required field is missing or invalid
        """

    def extra_metadata(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    def handle(self, body: Any) -> HandlerResult:
        """
        Handle one decoded request body.

        Returns:
            (HTTP status, JSON-serializable response body)
        """
        start_time = time.monotonic()
        if not isinstance(body, dict):
            return 400, error_body("Request body must be a JSON object")
        try:
            request = self.build_request(body)
        except RequestValidationError as e:
            return 400, error_body(str(e))

        extra = self.extra_metadata(body)
        response = self.router.analyze(request)
        if not response.success:
            metadata = build_metadata(start_time, model=request.model, **extra)
            return 500, error_body(response.error or "Analysis failed", self._wire(metadata))

        result = response.data
        try:
            parsed = json.loads(result.output_text)
            analysis = self.result_model.model_validate(parsed)
        except (ValueError, ValidationError):
            self.logger.error(f"Failed to parse AI response: {result.output_text[:500]}")
            metadata = build_metadata(
                start_time, model=result.model, tokens_used=result.usage.total_tokens, **extra
            )
            return 500, error_body("Failed to parse AI response as JSON", self._wire(metadata))

        metadata = build_metadata(
            start_time,
            model=result.model,
            tokens_used=result.usage.total_tokens,
            payment_cost=result.payment_cost,
            **extra
        )
        self.logger.info(
            f"Analysis complete for {analysis.ticker or 'event'}: {analysis.recommendedAction} "
            f"in {metadata.processing_time_ms}ms"
        )
        return 200, {
            "success": True,
            "data": analysis.model_dump(exclude_none=True),
            "metadata": self._wire(metadata),
        }

    @staticmethod
    def _wire(metadata) -> Dict[str, Any]:
        return metadata.model_dump(by_alias=True, exclude_none=True)


def require(body: Dict[str, Any], field: str) -> Any:
    value = body.get(field)
    if not value:
        raise RequestValidationError(f"Missing required parameter: '{field}'")
    return value


def require_pm_type(body: Dict[str, Any]) -> str:
    pm_type = body.get("pmType")
    if pm_type not in PM_TYPES:
        raise RequestValidationError("Invalid 'pmType'. Must be 'Kalshi' or 'Polymarket'")
    return pm_type

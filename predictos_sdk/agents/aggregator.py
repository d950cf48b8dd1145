"""
Analysis aggregator agent.

Consolidates the analyses of several event analysis agents into one
``AggregatedAnalysis`` with an agent consensus summary.
"""
from typing import Any, Dict

from pydantic import ValidationError

from ..models import AgentAnalysisInput, AggregatedAnalysis, CallRequest, ResponseFormat
from .base import AnalysisAgent, RequestValidationError, require, require_pm_type
from .prompts import aggregate_analyses_prompt

MIN_ANALYSES = 2


class AnalysisAggregatorAgent(AnalysisAgent):
    result_model = AggregatedAnalysis

    def build_request(self, body: Dict[str, Any]) -> CallRequest:
        raw_analyses = body.get("analyses")
        if not isinstance(raw_analyses, list) or len(raw_analyses) < MIN_ANALYSES:
            raise RequestValidationError(
                f"Missing required field: analyses (must have at least {MIN_ANALYSES})"
            )
        event_identifier = require(body, "eventIdentifier")
        pm_type = require_pm_type(body)
        model = require(body, "model")
        try:
            analyses = [AgentAnalysisInput.model_validate(a) for a in raw_analyses]
        except ValidationError as e:
            raise RequestValidationError(f"Invalid 'analyses' entry: {e.error_count()} validation error(s)")

        system_prompt, user_prompt = aggregate_analyses_prompt(analyses, event_identifier, pm_type)
        self.logger.info(f"Aggregating {len(analyses)} analyses for {event_identifier} with {model}")
        return CallRequest(
            prompt=user_prompt,
            system_prompt=system_prompt,
            response_format=ResponseFormat.JSON_OBJECT.value,
            model=model,
        )

    def extra_metadata(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {"agents_aggregated": len(body["analyses"])}

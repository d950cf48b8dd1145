"""
Event analysis agent.

Analyzes the markets of one Kalshi or Polymarket event with a single model
and returns a structured ``MarketAnalysis``.
"""
from typing import Any, Dict

from ..models import CallRequest, ResponseFormat
from .base import AnalysisAgent, RequestValidationError, require, require_pm_type
from .prompts import analyze_event_markets_prompt

DEFAULT_QUESTION = (
    "What is the best trading opportunity in this market? "
    "Analyze the probability and provide a recommendation."
)
SEARCH_TOOLS = ("x_search", "web_search")


class EventAnalysisAgent(AnalysisAgent):

    def build_request(self, body: Dict[str, Any]) -> CallRequest:
        markets = body.get("markets")
        if not isinstance(markets, list) or not markets:
            raise RequestValidationError("Missing or invalid 'markets' parameter")
        event_identifier = require(body, "eventIdentifier")
        pm_type = require_pm_type(body)
        model = require(body, "model")

        tools = body.get("tools") or []
        if not isinstance(tools, list):
            raise RequestValidationError("Invalid 'tools'. Must be a list")
        question = body.get("question") or DEFAULT_QUESTION

        system_prompt, user_prompt = analyze_event_markets_prompt(
            markets, event_identifier, question, pm_type, tools, body.get("userCommand")
        )
        self.logger.info(
            f"Analyzing {pm_type} event {event_identifier} ({len(markets)} markets) with {model}"
        )
        return CallRequest(
            prompt=user_prompt,
            system_prompt=system_prompt,
            response_format=ResponseFormat.JSON_OBJECT.value,
            model=model,
            enable_search=any(t in SEARCH_TOOLS for t in tools),
            tools=tuple(str(t) for t in tools),
        )

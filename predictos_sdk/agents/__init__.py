"""
Analysis agents built on the analysis router.
"""
from .aggregator import AnalysisAggregatorAgent
from .base import AnalysisAgent, RequestValidationError
from .event_analysis import DEFAULT_QUESTION, EventAnalysisAgent

__all__ = [
    "AnalysisAgent",
    "AnalysisAggregatorAgent",
    "EventAnalysisAgent",
    "RequestValidationError",
    "DEFAULT_QUESTION",
]

"""
Data models for the PredictOS SDK.
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class PmType(str, Enum):
    """Prediction market type"""
    KALSHI = "Kalshi"
    POLYMARKET = "Polymarket"


class ResponseFormat(str, Enum):
    """Response format tags understood by the provider gateways"""
    JSON_OBJECT = "json_object"
    TEXT = "text"


class CallRequest(BaseModel):
    """One prompt sent to one provider. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    system_prompt: str = ""
    response_format: str = ResponseFormat.JSON_OBJECT.value
    model: str
    max_retries: int = Field(default=3, ge=0)
    # Provider-specific flags
    enable_search: bool = False
    tools: Tuple[str, ...] = ()


class TokenUsage(BaseModel):
    """Token counters, zero when the provider omits them"""
    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class CallResult(BaseModel):
    """Normalized result of one provider call"""

    model_config = ConfigDict(frozen=True)

    created_at: int
    id: str
    model: str
    output_text: str = ""
    usage: TokenUsage = Field(default_factory=TokenUsage)
    status: str = "completed"
    # Provider-tagged extras, e.g. {"blockrun": {"payment_cost": "$0.001000"}}
    metadata: Optional[Dict[str, Dict[str, Any]]] = None

    @property
    def payment_cost(self) -> Optional[str]:
        """Payment cost reported by a payment-gated provider, if any."""
        if not self.metadata:
            return None
        for extras in self.metadata.values():
            if extras.get("payment_cost"):
                return extras["payment_cost"]
        return None


class ResponseMetadata(BaseModel):
    """Metadata attached to every service and router response"""

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId")
    timestamp: str
    processing_time_ms: int = Field(..., alias="processingTimeMs")
    model: Optional[str] = None
    tokens_used: Optional[int] = Field(None, alias="tokensUsed")
    payment_cost: Optional[str] = Field(None, alias="paymentCost")
    agents_aggregated: Optional[int] = Field(None, alias="agentsAggregated")


class RouterResponse(BaseModel):
    """Uniform envelope returned by the analysis router"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    data: Optional[CallResult] = None
    error: Optional[str] = None
    metadata: ResponseMetadata

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MarketAnalysis(BaseModel):
    """Structured analysis returned by an event analysis agent"""

    model_config = ConfigDict(extra="allow")

    event_ticker: str = ""
    ticker: str = ""
    title: str = ""
    marketProbability: float = 0
    estimatedActualProbability: float = 0
    alphaOpportunity: float = 0
    hasAlpha: bool = False
    predictedWinner: str = ""
    winnerConfidence: float = 0
    recommendedAction: str = "NO TRADE"
    reasoning: str = ""
    confidence: float = 0
    keyFactors: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    questionAnswer: str = ""
    analysisSummary: str = ""
    xSources: Optional[List[str]] = None
    webSources: Optional[List[str]] = None


class AgentConsensus(BaseModel):
    agreementLevel: Literal["high", "medium", "low"] = "low"
    majorityRecommendation: str = ""
    dissenting: List[str] = Field(default_factory=list)


class AggregatedAnalysis(MarketAnalysis):
    """Consolidated analysis across several agents"""
    agentConsensus: AgentConsensus = Field(default_factory=AgentConsensus)


class AgentAnalysisInput(BaseModel):
    agentId: str
    model: str
    analysis: MarketAnalysis


class TokenIds(BaseModel):
    """Up and Down outcome token ids of a 15-minute market"""
    up: str
    down: str


class OrderResponse(BaseModel):
    """Outcome of one order placement"""

    success: bool
    orderId: Optional[str] = None
    errorMsg: Optional[str] = None
    transactionHash: Optional[str] = None
    status: Optional[str] = None


class BotLogEntry(BaseModel):
    """Structured log record returned to limit-order bot callers"""

    timestamp: str
    level: Literal["INFO", "WARN", "ERROR", "SUCCESS"]
    message: str
    details: Optional[Dict[str, Any]] = None

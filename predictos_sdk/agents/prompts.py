"""
Prompt builders for the analysis agents.

Each builder returns a ``(system_prompt, user_prompt)`` pair.
"""
import json
from typing import Any, List, Optional, Sequence, Tuple

from ..models import AgentAnalysisInput

_ANALYSIS_SCHEMA = """{
  "event_ticker": "string - event identifier",
  "ticker": "string - ticker of the market with the best opportunity",
  "title": "string - market title",
  "marketProbability": number - implied market probability (0-100),
  "estimatedActualProbability": number - your estimated probability (0-100),
  "alphaOpportunity": number - estimatedActualProbability minus marketProbability,
  "hasAlpha": boolean - whether the edge is meaningful,
  "predictedWinner": "string - either 'YES' or 'NO'",
  "winnerConfidence": number - confidence in the predicted winner (0-100),
  "recommendedAction": "string - either 'BUY YES', 'BUY NO', or 'NO TRADE'",
  "reasoning": "string - detailed reasoning",
  "confidence": number - overall confidence (0-100),
  "keyFactors": ["string"],
  "risks": ["string"],
  "questionAnswer": "string - direct answer to the question",
  "analysisSummary": "string - brief summary under 270 characters"SOURCES
}"""

_SOURCE_FIELDS = {
    "x_search": '"xSources": ["string"] - URLs of X posts backing the analysis',
    "web_search": '"webSources": ["string"] - URLs of web pages backing the analysis',
}


def analyze_event_markets_prompt(
    markets: Sequence[Any],
    event_identifier: str,
    question: str,
    pm_type: str,
    tools: Optional[Sequence[str]] = None,
    user_command: Optional[str] = None
) -> Tuple[str, str]:
    """
    Build the prompt pair for a single-agent event analysis.

    Args:
        markets: Raw market records for the event
        event_identifier: Kalshi event ticker or Polymarket event slug
        question: Question the analysis must answer
        pm_type: "Kalshi" or "Polymarket"
        tools: Search tools the model may use; each adds a sources field
        user_command: Optional user instruction to prioritize

    Returns:
        (system_prompt, user_prompt)
    """
    system_prompt = (
        "You are an expert prediction market analyst. You compare market-implied "
        "probabilities with your own estimate of the true probability to find mispriced "
        "markets. Your output is ALWAYS valid JSON matching the exact schema requested."
    )

    source_fields = [_SOURCE_FIELDS[t] for t in (tools or []) if t in _SOURCE_FIELDS]
    schema = _ANALYSIS_SCHEMA.replace(
        "SOURCES", "".join(f",\n  {field}" for field in source_fields)
    )

    sections = [
        f"# Task: Analyze {pm_type} event {event_identifier}",
        f"## Markets ({len(markets)})\n{json.dumps(list(markets), indent=2, default=str)}",
        f"## Question\n{question}",
    ]
    if user_command:
        sections.append(f"## User Command (prioritize this)\n{user_command}")
    if source_fields:
        sections.append(
            "## Sources\nUse your search tools and cite every source URL you relied on."
        )
    sections.append(f"## Output Format\nReturn your analysis in JSON format:\n\n{schema}")
    return system_prompt, "\n\n".join(sections)


def _format_agent(index: int, agent: AgentAnalysisInput) -> str:
    a = agent.analysis
    sign = "+" if a.alphaOpportunity > 0 else ""
    return "\n".join([
        f"### Agent {index}: {agent.model}",
        f"- **Ticker**: {a.ticker}",
        f"- **Title**: {a.title}",
        f"- **Market Probability**: {a.marketProbability}%",
        f"- **Estimated Actual Probability**: {a.estimatedActualProbability}%",
        f"- **Alpha Opportunity**: {sign}{a.alphaOpportunity}%",
        f"- **Has Alpha**: {a.hasAlpha}",
        f"- **Predicted Winner**: {a.predictedWinner}",
        f"- **Winner Confidence**: {a.winnerConfidence}%",
        f"- **Recommended Action**: {a.recommendedAction}",
        f"- **Confidence**: {a.confidence}%",
        f"- **Reasoning**: {a.reasoning}",
        f"- **Key Factors**: {'; '.join(a.keyFactors)}",
        f"- **Risks**: {'; '.join(a.risks)}",
        f"- **Analysis Summary**: {a.analysisSummary}",
    ])


def aggregate_analyses_prompt(
    analyses: List[AgentAnalysisInput],
    event_identifier: str,
    pm_type: str
) -> Tuple[str, str]:
    """Build the prompt pair that consolidates several agent analyses."""
    system_prompt = (
        "You are a senior financial analyst who synthesizes multiple expert opinions on "
        "prediction markets into one authoritative assessment. Weigh each analysis by its "
        "confidence and the consistency of its reasoning. Your output is ALWAYS valid JSON "
        "matching the exact schema requested."
    )
    agents_text = "\n\n".join(_format_agent(i, a) for i, a in enumerate(analyses, start=1))
    schema = _ANALYSIS_SCHEMA.replace(
        "SOURCES",
        ',\n  "agentConsensus": {\n'
        '    "agreementLevel": "string - \'high\' (>80% agree), \'medium\' (50-80%), or \'low\' (<50%)",\n'
        '    "majorityRecommendation": "string - what most agents recommended",\n'
        '    "dissenting": ["string"] - dissenting opinions summarized\n'
        "  }",
    )
    user_prompt = "\n\n".join([
        "# Task: Aggregate Multiple Agent Analyses",
        f"You are consolidating analyses from {len(analyses)} AI agents for the "
        f"{pm_type} event: {event_identifier}",
        f"## Individual Agent Analyses\n\n{agents_text}",
        "## Your Task\n"
        "Identify where agents agree and disagree, weigh high-confidence analyses with "
        "strong reasoning more heavily, and give a final recommendation. Be more "
        "conservative with confidence when consensus is low.",
        f"## Output Format\nReturn your consolidated analysis in JSON format:\n\n{schema}",
    ])
    return system_prompt, user_prompt

"""
Response normalization.

Each provider answers in its own shape: BlockRun relays OpenAI chat
completions (``choices``), OpenAI and xAI use the Responses API (``output``).
``normalize_response`` maps them onto one closed set of variants and
``to_call_result`` reduces a variant to the ``CallResult`` callers consume.
"""
import logging
import time
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..models import CallResult, TokenUsage
from .exceptions import ResponseParseError

logger = logging.getLogger(__name__)


class OutputText(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "output_text"
    text: Optional[str] = None


class OutputItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    id: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    content: List[OutputText] = Field(default_factory=list)


class BlockRunMetadata(BaseModel):
    payment_cost: Optional[str] = None
    citations: Optional[List[str]] = None


class GrokMetadata(BaseModel):
    citations: Optional[List[str]] = None


class _ResponseBase(BaseModel):
    created_at: int
    id: str
    model: str
    output: List[OutputItem] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    status: str = "completed"


class BlockRunResponse(_ResponseBase):
    provider: Literal["blockrun"] = "blockrun"
    blockrun: BlockRunMetadata = Field(default_factory=BlockRunMetadata)


class OpenAIResponse(_ResponseBase):
    provider: Literal["openai"] = "openai"


class GrokResponse(_ResponseBase):
    provider: Literal["grok"] = "grok"
    grok: GrokMetadata = Field(default_factory=GrokMetadata)


ProviderResponse = Annotated[
    Union[BlockRunResponse, OpenAIResponse, GrokResponse],
    Field(discriminator="provider"),
]


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _citations(raw: Dict[str, Any]) -> Optional[List[str]]:
    citations = raw.get("citations")
    if not isinstance(citations, list):
        return None
    return [str(c) for c in citations]


def _chat_completion_output(raw: Dict[str, Any]) -> List[OutputItem]:
    """Wrap the first chat-completion choice as a single message item."""
    choices = raw.get("choices")
    first = choices[0] if isinstance(choices, list) and choices else {}
    message = first.get("message") if isinstance(first, dict) else None
    text = ""
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        text = message["content"]
    return [
        OutputItem(
            type="message",
            id=f"msg-{int(time.time() * 1000)}",
            role="assistant",
            status="completed",
            content=[OutputText(type="output_text", text=text)],
        )
    ]


def _responses_output(raw: Dict[str, Any]) -> List[OutputItem]:
    """Keep well-formed items of a Responses API ``output`` list."""
    items = []
    for item in raw.get("output") or []:
        if not isinstance(item, dict) or not isinstance(item.get("type"), str):
            continue
        content = item.get("content")
        fragments = []
        if isinstance(content, list):
            for fragment in content:
                if isinstance(fragment, dict):
                    text = fragment.get("text")
                    fragments.append(OutputText(
                        type=str(fragment.get("type", "output_text")),
                        text=text if isinstance(text, str) else None,
                    ))
        items.append(OutputItem(
            type=item["type"],
            id=item.get("id"),
            role=item.get("role"),
            status=item.get("status"),
            content=fragments,
        ))
    return items


def _usage(raw: Dict[str, Any]) -> TokenUsage:
    usage = raw.get("usage")
    if not isinstance(usage, dict):
        return TokenUsage()
    input_tokens = _as_int(usage.get("input_tokens", usage.get("prompt_tokens")))
    output_tokens = _as_int(usage.get("output_tokens", usage.get("completion_tokens")))
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=_as_int(usage.get("total_tokens")),
    )


def _common_fields(provider: str, raw: Dict[str, Any]) -> Dict[str, Any]:
    if "choices" in raw:
        output = _chat_completion_output(raw)
    else:
        output = _responses_output(raw)
    created = raw.get("created_at", raw.get("created"))
    return {
        "created_at": _as_int(created) or int(time.time()),
        "id": str(raw.get("id") or f"{provider}-{int(time.time() * 1000)}"),
        "model": str(raw.get("model") or "unknown"),
        "output": output,
        "usage": _usage(raw),
        "status": str(raw.get("status") or "completed"),
    }


def _blockrun(raw: Dict[str, Any], payment_cost: Optional[str]) -> BlockRunResponse:
    return BlockRunResponse(
        blockrun=BlockRunMetadata(payment_cost=payment_cost, citations=_citations(raw)),
        **_common_fields("blockrun", raw)
    )


def _openai(raw: Dict[str, Any], payment_cost: Optional[str]) -> OpenAIResponse:
    return OpenAIResponse(**_common_fields("openai", raw))


def _grok(raw: Dict[str, Any], payment_cost: Optional[str]) -> GrokResponse:
    return GrokResponse(grok=GrokMetadata(citations=_citations(raw)), **_common_fields("grok", raw))


_NORMALIZERS: Dict[str, Callable[[Dict[str, Any], Optional[str]], Any]] = {
    "blockrun": _blockrun,
    "openai": _openai,
    "grok": _grok,
}


def normalize_response(provider: str, raw: Any, payment_cost: Optional[str] = None) -> ProviderResponse:
    """
    Map a provider's raw JSON body onto its response variant.

    Args:
        provider: Provider tag ("blockrun", "openai" or "grok")
        raw: Decoded JSON body
        payment_cost: Formatted payment cost for payment-gated providers

    Returns:
        BlockRunResponse, OpenAIResponse or GrokResponse

    Raises:
        ResponseParseError: If the body is not a JSON object
        ValueError: If the provider tag is unknown
    """
    if not isinstance(raw, dict):
        raise ResponseParseError(
            f"Expected a JSON object from {provider}, got {type(raw).__name__}"
        )
    try:
        normalizer = _NORMALIZERS[getattr(provider, "value", provider)]
    except KeyError:
        raise ValueError(f"Unknown provider: {provider}")
    return normalizer(raw, payment_cost)


def extract_output_text(response: ProviderResponse) -> str:
    """
    Concatenate the text of every ``message`` output item, in order.

    Fragments without text are skipped; the rest are joined with newlines.
    """
    texts = []
    for item in response.output:
        if item.type != "message":
            continue
        texts.extend(fragment.text for fragment in item.content if fragment.text is not None)
    return "\n".join(texts)


def _provider_metadata(response: ProviderResponse) -> Optional[Dict[str, Dict[str, Any]]]:
    extras = None
    if isinstance(response, BlockRunResponse):
        extras = response.blockrun.model_dump(exclude_none=True)
    elif isinstance(response, GrokResponse):
        extras = response.grok.model_dump(exclude_none=True)
    if not extras:
        return None
    return {response.provider: extras}


def to_call_result(response: ProviderResponse) -> CallResult:
    """Reduce a provider response variant to a ``CallResult``."""
    return CallResult(
        created_at=response.created_at,
        id=response.id,
        model=response.model,
        output_text=extract_output_text(response),
        usage=response.usage,
        status=response.status,
        metadata=_provider_metadata(response),
    )

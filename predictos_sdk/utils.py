"""
Utility functions for the PredictOS SDK.
"""
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models import ResponseMetadata


def new_request_id() -> str:
    """Generate a fresh request id (UUID4)."""
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def elapsed_ms(start_time: float) -> int:
    """
    Milliseconds elapsed since ``start_time``.

    Args:
        start_time: A ``time.monotonic()`` reading

    Returns:
        Elapsed whole milliseconds
    """
    return int((time.monotonic() - start_time) * 1000)


def build_metadata(start_time: float, **fields: Any) -> ResponseMetadata:
    """
    Build response metadata with a fresh request id and timestamp.

    Args:
        start_time: ``time.monotonic()`` reading taken when the request began
        **fields: Optional metadata fields (model, tokens_used, payment_cost, ...)

    Returns:
        ResponseMetadata instance
    """
    return ResponseMetadata(
        request_id=new_request_id(),
        timestamp=utc_timestamp(),
        processing_time_ms=elapsed_ms(start_time),
        **fields
    )


def truncate_middle(value: Optional[str], head: int = 10, tail: int = 8) -> str:
    """Shorten an address or token id for logging: ``0x12345678...9abcdef0``."""
    if not value:
        return ""
    if len(value) <= head + tail:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def sanitize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove prompt text from a provider payload for logging

    Args:
        payload: Dictionary payload to sanitize

    Returns:
        Sanitized payload for safe logging
    """
    if not isinstance(payload, dict):
        return {"type": str(type(payload))}

    result = payload.copy()

    for key in ("messages", "input"):
        if isinstance(result.get(key), list):
            result[key] = [
                {
                    "role": m.get("role"),
                    "content": f"[REDACTED - {len(str(m.get('content', '')))} chars]",
                }
                if isinstance(m, dict) else m
                for m in result[key]
            ]

    return result

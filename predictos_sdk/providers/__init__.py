"""
Provider call gateways.
"""
from .base import ProviderGateway
from .blockrun import (
    BLOCKRUN_MODELS, BlockRunGateway, default_model_list,
    is_blockrun_model, resolve_blockrun_model
)
from .grok import GrokGateway
from .openai import OpenAIGateway

__all__ = [
    "ProviderGateway",
    "BlockRunGateway",
    "OpenAIGateway",
    "GrokGateway",
    "BLOCKRUN_MODELS",
    "is_blockrun_model",
    "resolve_blockrun_model",
    "default_model_list",
]

"""Generation providers."""

from hrdesk.providers.base import (
    BaseProvider,
    ChatChunk,
    ChatRequest,
    ProviderMessage,
    ProviderType,
    ToolCall,
)
from hrdesk.providers.registry import ProviderRegistry

__all__ = [
    "BaseProvider",
    "ChatChunk",
    "ChatRequest",
    "ProviderMessage",
    "ProviderRegistry",
    "ProviderType",
    "ToolCall",
]

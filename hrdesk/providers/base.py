"""Generation provider abstractions."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ProviderType(str, Enum):
    OPENAI_COMPAT = "openai_compat"
    MOCK = "mock"


@dataclass
class ToolCall:
    """A tool invocation requested by the model. ``arguments`` is raw JSON text."""

    id: str
    name: str
    arguments: str = "{}"


@dataclass
class ProviderMessage:
    role: str
    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


@dataclass
class ChatRequest:
    messages: List[ProviderMessage]
    model: str
    temperature: float = 0.2
    max_tokens: Optional[int] = None
    tools: Optional[List[Dict[str, Any]]] = None


@dataclass
class ChatChunk:
    """One streamed piece of a model step.

    Text arrives as ``content`` deltas. Tool calls are delivered whole, on the
    chunk that closes the step.
    """

    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[str] = None
    model: Optional[str] = None


class BaseProvider(ABC):
    """A text and tool-call producing collaborator."""

    provider_type: ProviderType

    @abstractmethod
    async def healthcheck(self) -> bool:
        """Return True when the backend answers."""

    @abstractmethod
    def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        """Stream one model step."""

    async def aclose(self) -> None:
        """Release network resources."""

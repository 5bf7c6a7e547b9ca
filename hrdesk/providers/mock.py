"""Deterministic mock provider for tests and CI.

Behaviour, keyed on the last message of the request:

* a user message whose lines start with ``/tool <name> <json>`` requests
  one tool call per such line, all in the same step;
* a user message ``/fail`` raises :class:`ProviderError`;
* a tool message is answered with a one-line summary of the results;
* anything else is echoed back as ``[mock] <text>``.
"""

import json
from collections.abc import AsyncIterator
from typing import List

from hrdesk.core.exceptions import ProviderError
from hrdesk.providers.base import (
    BaseProvider,
    ChatChunk,
    ChatRequest,
    ProviderMessage,
    ProviderType,
    ToolCall,
)

MOCK_MODEL = "mock-model"


def _tool_calls_from(text: str, step: int) -> List[ToolCall]:
    calls = []
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith("/tool "):
            continue
        _, _, rest = line.partition(" ")
        name, _, arguments = rest.strip().partition(" ")
        calls.append(
            ToolCall(
                id=f"mock-call-{step}-{len(calls)}",
                name=name,
                arguments=arguments.strip() or "{}",
            )
        )
    return calls


def _summarize(results: List[ProviderMessage]) -> str:
    pieces = []
    for message in results:
        try:
            payload = json.loads(message.content or "null")
        except json.JSONDecodeError:
            payload = message.content
        status = "error" if isinstance(payload, dict) and payload.get("error") else "ok"
        pieces.append(f"{message.name or 'tool'}: {status}")
    return "[mock] " + "; ".join(pieces)


class MockProvider(BaseProvider):
    """Simple deterministic provider for tests and CI."""

    provider_type = ProviderType.MOCK

    async def healthcheck(self) -> bool:
        return True

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        model = request.model or MOCK_MODEL
        last = request.messages[-1] if request.messages else ProviderMessage(role="user", content="")

        if last.role == "tool":
            trailing = []
            for message in reversed(request.messages):
                if message.role != "tool":
                    break
                trailing.append(message)
            text = _summarize(list(reversed(trailing)))
        else:
            prompt = (last.content or "").strip()
            if prompt == "/fail":
                raise ProviderError("Mock provider failure requested", provider=self.provider_type.value)
            calls = _tool_calls_from(prompt, len(request.messages))
            if calls:
                yield ChatChunk(tool_calls=calls, finish_reason="tool_calls", model=model)
                return
            text = f"[mock] {prompt}".strip()

        for token in text.split(" "):
            yield ChatChunk(content=f"{token} ", model=model)
        yield ChatChunk(content="", finish_reason="stop", model=model)

"""OpenAI-compatible provider with streamed tool calling."""

import json
from collections.abc import AsyncIterator
from typing import Any, Dict, List

import httpx

from hrdesk.core.exceptions import ProviderError
from hrdesk.core.logging import get_logger
from hrdesk.providers.base import (
    BaseProvider,
    ChatChunk,
    ChatRequest,
    ProviderMessage,
    ProviderType,
    ToolCall,
)

logger = get_logger(__name__)


def _message_payload(message: ProviderMessage) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"role": message.role, "content": message.content}
    if message.tool_calls:
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments},
            }
            for call in message.tool_calls
        ]
    if message.tool_call_id:
        payload["tool_call_id"] = message.tool_call_id
    if message.name:
        payload["name"] = message.name
    return payload


class _ToolCallAccumulator:
    """Reassemble tool calls from streamed ``delta.tool_calls`` fragments."""

    def __init__(self) -> None:
        self._calls: Dict[int, Dict[str, str]] = {}

    def add(self, fragments: List[Dict[str, Any]]) -> None:
        for fragment in fragments:
            index = fragment.get("index", len(self._calls))
            call = self._calls.setdefault(index, {"id": "", "name": "", "arguments": ""})
            if fragment.get("id"):
                call["id"] = fragment["id"]
            function = fragment.get("function") or {}
            if function.get("name"):
                call["name"] += function["name"]
            if function.get("arguments"):
                call["arguments"] += function["arguments"]

    def drain(self) -> List[ToolCall]:
        calls = [
            ToolCall(
                id=call["id"] or f"call_{index}",
                name=call["name"],
                arguments=call["arguments"] or "{}",
            )
            for index, call in sorted(self._calls.items())
        ]
        self._calls.clear()
        return calls


class OpenAICompatProvider(BaseProvider):
    """Provider for OpenAI-compatible ``/chat/completions`` endpoints."""

    provider_type = ProviderType.OPENAI_COMPAT

    def __init__(self, base_url: str, api_key: str = "", timeout: int = 60):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def healthcheck(self) -> bool:
        try:
            response = await self.client.get("/models")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _payload(self, request: ChatRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": [_message_payload(m) for m in request.messages],
            "temperature": request.temperature,
            "stream": True,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens
        if request.tools:
            payload["tools"] = request.tools
            payload["tool_choice"] = "auto"
        return payload

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        """Stream one step. Tool calls are yielded whole on the final chunk."""
        accumulator = _ToolCallAccumulator()
        finish_reason = None
        model = request.model

        try:
            async with self.client.stream("POST", "/chat/completions", json=self._payload(request)) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise ProviderError(
                        f"Provider returned HTTP {response.status_code}: {body[:200]}",
                        provider=self.provider_type.value,
                    )

                async for line in response.aiter_lines():
                    if not line or not line.startswith("data: "):
                        continue
                    data_str = line[6:]
                    if data_str == "[DONE]":
                        break
                    try:
                        data = json.loads(data_str)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed stream line", data={"line": data_str[:120]})
                        continue

                    choices = data.get("choices") or []
                    if not choices:
                        continue
                    choice = choices[0]
                    model = data.get("model") or model
                    delta = choice.get("delta") or {}

                    if delta.get("tool_calls"):
                        accumulator.add(delta["tool_calls"])
                    if delta.get("content"):
                        yield ChatChunk(content=delta["content"], model=model)
                    if choice.get("finish_reason"):
                        finish_reason = choice["finish_reason"]
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"Provider request failed: {type(exc).__name__}", provider=self.provider_type.value
            ) from exc

        tool_calls = accumulator.drain()
        if tool_calls and finish_reason in (None, "stop"):
            finish_reason = "tool_calls"
        yield ChatChunk(tool_calls=tool_calls, finish_reason=finish_reason or "stop", model=model)

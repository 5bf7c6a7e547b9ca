"""Chat message model, history validation and finalize reconciliation."""

import uuid
from typing import Annotated, Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from hrdesk.core.exceptions import HistoryValidationError


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TextPart(_WireModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(_WireModel):
    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str = Field(min_length=1)
    tool_name: str = Field(min_length=1)
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(_WireModel):
    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str = Field(min_length=1)
    tool_name: str = Field(min_length=1)
    output: Any = None
    is_error: bool = False


MessagePart = Annotated[Union[TextPart, ToolCallPart, ToolResultPart], Field(discriminator="type")]


class ChatMessage(_WireModel):
    """One message of a conversation.

    Plain ``{"role": ..., "content": "..."}`` input is accepted and turned into
    a single text part.
    """

    id: str = ""
    role: Literal["user", "assistant", "tool"]
    parts: List[MessagePart] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _content_shorthand(cls, data: Any) -> Any:
        if isinstance(data, dict) and "parts" not in data and isinstance(data.get("content"), str):
            content = data["content"]
            data = {k: v for k, v in data.items() if k != "content"}
            data["parts"] = [{"type": "text", "text": content}]
        return data

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def text(self) -> str:
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))


def new_message_id() -> str:
    return uuid.uuid4().hex


def parse_messages(raw: Iterable[Any]) -> List[ChatMessage]:
    """Validate wire messages. Raises pydantic ``ValidationError``."""
    return [ChatMessage.model_validate(item) for item in raw]


def validate_history(messages: Sequence[Any], known_tools: Iterable[str]) -> List[ChatMessage]:
    """Check a message sequence against the message schema and the tool catalog.

    Every tool-call must name a tool that still exists, and every tool-result
    must answer a tool-call made earlier in the sequence.

    Raises:
        HistoryValidationError: If any message or part is invalid.
    """
    try:
        parsed = parse_messages(messages)
    except ValidationError as exc:
        raise HistoryValidationError(
            "History does not match the message schema",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc

    tools = set(known_tools)
    open_calls: set = set()
    for index, message in enumerate(parsed):
        for part in message.parts:
            if isinstance(part, ToolCallPart):
                if part.tool_name not in tools:
                    raise HistoryValidationError(
                        f"History references unknown tool '{part.tool_name}'",
                        details={"index": index},
                    )
                open_calls.add(part.tool_call_id)
            elif isinstance(part, ToolResultPart) and part.tool_call_id not in open_calls:
                raise HistoryValidationError(
                    f"Tool result '{part.tool_call_id}' has no matching call",
                    details={"index": index},
                )
    return parsed


def reconcile_messages(
    messages: Sequence[Dict[str, Any]],
    id_factory: Optional[Callable[[], str]] = None,
) -> List[Dict[str, Any]]:
    """Prepare a finished turn's messages for persistence.

    Messages without an id get a fresh one. Duplicated ids keep only their
    last occurrence; the surviving messages keep their relative order.
    """
    make_id = id_factory or new_message_id
    with_ids = [m if m.get("id") else {**m, "id": make_id()} for m in messages]

    seen: set = set()
    kept: List[Dict[str, Any]] = []
    for message in reversed(with_ids):
        if message["id"] in seen:
            continue
        seen.add(message["id"])
        kept.append(message)
    kept.reverse()
    return kept

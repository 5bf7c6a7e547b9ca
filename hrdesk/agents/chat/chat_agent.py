"""Turn orchestrator.

Drives one chat turn: resolve the conversation, load and validate prior
history, run a bounded exchange of model steps and HR tool calls, then
finalize the turn's messages into the conversation store.

The generation and finalize work runs in a background task that outlives the
HTTP response, so a client that disconnects mid-stream still finds the full
turn stored on its next visit.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.conversation import (
    ChatMessage,
    ConversationStore,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    finalize_messages,
    new_message_id,
    reconcile_messages,
    validate_history,
)
from hrdesk.agents.hr import ExecutionContext, ToolRegistry, bind_context
from hrdesk.auth.rbac import Role
from hrdesk.config import get_settings
from hrdesk.core.exceptions import (
    HistoryValidationError,
    HRDeskException,
    InvalidInputError,
    NotFoundError,
    ProviderError,
)
from hrdesk.core.logging import get_logger
from hrdesk.db.database import get_session_local
from hrdesk.providers.base import BaseProvider, ChatRequest, ProviderMessage, ToolCall

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are HRDesk, an assistant for human-resources staff. Use the provided tools "
    "to read and change employee, contract, letter, attendance, payroll and benefit "
    "records. Never invent record identifiers; look them up first. When a tool "
    "returns an error, explain it to the user instead of retrying blindly."
)


def system_prompt(role: Role) -> str:
    """Base instructions plus the caller's role, so denials can be anticipated."""
    return (
        f"{SYSTEM_PROMPT} The current user's role is {role.value}. Only call tools that "
        "role may use; if a request needs a tool it cannot use, say so up front."
    )

EventSink = Callable[[str, Dict[str, Any]], None]


class TurnState(str, Enum):
    RESOLVING_CONVERSATION = "ResolvingConversation"
    LOADING_HISTORY = "LoadingHistory"
    VALIDATING_HISTORY = "ValidatingHistory"
    GENERATING = "Generating"
    FINALIZING = "Finalizing"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class TurnResult:
    """Outcome of a finished turn."""

    conversation_id: str
    is_new: bool
    state: TurnState
    messages: List[Dict[str, Any]] = field(default_factory=list)
    finish_reason: Optional[str] = None
    persisted: bool = False
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "isNew": self.is_new,
            "status": self.state.value,
            "finishReason": self.finish_reason,
            "persisted": self.persisted,
            "messages": self.messages,
            "error": self.error,
        }


def _parse_arguments(call: ToolCall) -> Tuple[Dict[str, Any], Optional[HRDeskException]]:
    try:
        arguments = json.loads(call.arguments or "{}")
    except json.JSONDecodeError:
        return {}, InvalidInputError(f"Arguments for '{call.name}' are not valid JSON")
    if not isinstance(arguments, dict):
        return {}, InvalidInputError(f"Arguments for '{call.name}' must be a JSON object")
    return arguments, None


def to_provider_messages(messages: Sequence[ChatMessage]) -> List[ProviderMessage]:
    """Flatten chat messages into the provider's chat-completions shape."""
    converted: List[ProviderMessage] = []
    for message in messages:
        if message.role == "tool":
            for part in message.parts:
                if isinstance(part, ToolResultPart):
                    converted.append(
                        ProviderMessage(
                            role="tool",
                            content=json.dumps(part.output, default=str),
                            tool_call_id=part.tool_call_id,
                            name=part.tool_name,
                        )
                    )
            continue

        calls = [
            ToolCall(id=part.tool_call_id, name=part.tool_name, arguments=json.dumps(part.input))
            for part in message.parts
            if isinstance(part, ToolCallPart)
        ]
        converted.append(
            ProviderMessage(role=message.role, content=message.text() or None, tool_calls=calls)
        )
    return converted


def _trim_history(messages: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    if limit <= 0 or len(messages) <= limit:
        return messages
    trimmed = messages[-limit:]
    # A tool message cut off from its call would fail validation.
    while trimmed and trimmed[0].get("role") == "tool":
        trimmed = trimmed[1:]
    return trimmed


class TurnOrchestrator:
    """Runs a single turn for one authenticated caller."""

    def __init__(
        self,
        ctx: ExecutionContext,
        provider: Optional[BaseProvider],
        registry: ToolRegistry,
        model: Optional[str] = None,
        session_factory: Optional[Callable[[], DBSession]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            ctx: Caller of the turn
            provider: Generation provider
            registry: HR tool registry
            model: Model name passed to the provider
            session_factory: Session factory for store access; defaults to the app engine
        """
        self.ctx = ctx
        self.provider = provider
        self.registry = registry
        self.model = model or get_settings().provider_model
        self.session_factory = session_factory or get_session_local()
        self.state = TurnState.RESOLVING_CONVERSATION
        self.transitions: List[TurnState] = [self.state]
        self.conversation_id: Optional[str] = None
        self.is_new = False
        self.result: Optional[TurnResult] = None

    def _enter(self, state: TurnState) -> None:
        self.state = state
        self.transitions.append(state)
        logger.debug(
            "Turn state changed",
            data={"conversation_id": self.conversation_id, "state": state.value},
        )

    def resolve(self, conversation_id: Optional[str], title: Optional[str] = None) -> Tuple[str, bool]:
        """Return ``(conversation_id, is_new)``.

        A missing, unknown or foreign id silently starts a new conversation.
        """
        db = self.session_factory()
        try:
            store = ConversationStore(db)
            if conversation_id and store.get(conversation_id, owner_id=self.ctx.actor_id) is not None:
                self.conversation_id, self.is_new = conversation_id, False
                return conversation_id, False

            if conversation_id:
                logger.warning(
                    "Conversation not found, starting a new one",
                    data={"requested_id": conversation_id, "user_id": self.ctx.actor_id},
                )
            self.conversation_id = store.create(self.ctx.actor_id, title=title)
            self.is_new = True
            return self.conversation_id, True
        finally:
            db.close()

    def resume(self, conversation_id: str) -> List[Dict[str, Any]]:
        """Stored message sequence of one of the caller's conversations.

        Raises:
            NotFoundError: If the conversation is absent or belongs to someone else.
        """
        db = self.session_factory()
        try:
            return ConversationStore(db).load(conversation_id, owner_id=self.ctx.actor_id)
        finally:
            db.close()

    def _load_history(self) -> List[Dict[str, Any]]:
        db = self.session_factory()
        try:
            return ConversationStore(db).load(self.conversation_id, owner_id=self.ctx.actor_id)
        finally:
            db.close()

    async def _prior_history(self) -> List[Dict[str, Any]]:
        self._enter(TurnState.LOADING_HISTORY)
        if self.is_new:
            return []
        try:
            prior = await asyncio.to_thread(self._load_history)
        except (NotFoundError, SQLAlchemyError) as exc:
            logger.warning(
                "History load failed, continuing with an empty history",
                data={"conversation_id": self.conversation_id, "error": str(exc)},
            )
            return []
        return _trim_history(prior, get_settings().chat_history_limit)

    def _validated_context(
        self, prior: List[Dict[str, Any]], new: List[Dict[str, Any]]
    ) -> List[ChatMessage]:
        self._enter(TurnState.VALIDATING_HISTORY)
        known = self.registry.names()
        try:
            return validate_history(reconcile_messages(prior + new), known)
        except HistoryValidationError as exc:
            logger.warning(
                f"Stored history rejected: {exc.message}",
                data={"conversation_id": self.conversation_id},
            )
        return [ChatMessage.model_validate(message) for message in new]

    async def run(self, messages: Sequence[ChatMessage], emit: EventSink) -> TurnResult:
        """Run the turn after :meth:`resolve`, reporting progress through ``emit``."""
        if self.conversation_id is None:
            raise RuntimeError("resolve() must run before run()")

        emit("start", {"conversationId": self.conversation_id, "isNew": self.is_new})
        new = [
            message.to_wire() if message.id else {**message.to_wire(), "id": new_message_id()}
            for message in messages
        ]
        prior = await self._prior_history()
        context = self._validated_context(prior, new)

        self._enter(TurnState.GENERATING)
        produced: List[ChatMessage] = []
        error: Optional[Dict[str, Any]] = None
        finish_reason: Optional[str] = None
        try:
            finish_reason = await self._generate(context, produced, emit)
        except ProviderError as exc:
            error = {"code": exc.code, "message": exc.message}
        except Exception as exc:
            logger.error(
                f"Turn generation crashed: {type(exc).__name__}",
                data={"conversation_id": self.conversation_id, "error": str(exc)},
            )
            error = {"code": "E5000", "message": "Generation failed"}

        if error is not None:
            logger.warning(
                f"Turn failed during generation: {error['message']}",
                data={"conversation_id": self.conversation_id},
            )
            emit("error", {"conversationId": self.conversation_id, "error": error})

        self._enter(TurnState.FINALIZING)
        produced_wire = [message.to_wire() for message in produced]
        persisted = await finalize_messages(
            self.conversation_id, new + produced_wire, session_factory=self.session_factory
        )

        if error is None:
            self._enter(TurnState.DONE)
            emit(
                "finish",
                {
                    "conversationId": self.conversation_id,
                    "finishReason": finish_reason,
                    "persisted": persisted,
                },
            )
        else:
            self._enter(TurnState.FAILED)

        self.result = TurnResult(
            conversation_id=self.conversation_id,
            is_new=self.is_new,
            state=self.state,
            messages=produced_wire,
            finish_reason=finish_reason,
            persisted=persisted,
            error=error,
        )
        return self.result

    async def _generate(
        self, context: List[ChatMessage], produced: List[ChatMessage], emit: EventSink
    ) -> str:
        settings = get_settings()
        tools = self.registry.provider_tools()

        for step in range(settings.chat_max_steps):
            request = ChatRequest(
                messages=[ProviderMessage(role="system", content=system_prompt(self.ctx.role))]
                + to_provider_messages(context + produced),
                model=self.model,
                temperature=settings.provider_temperature,
                tools=tools,
            )
            message_id = new_message_id()
            text: List[str] = []
            calls: List[ToolCall] = []
            finish_reason = "stop"
            try:
                async for chunk in self.provider.chat_stream(request):
                    if chunk.content:
                        text.append(chunk.content)
                        emit("text-delta", {"messageId": message_id, "delta": chunk.content})
                    calls.extend(chunk.tool_calls)
                    if chunk.finish_reason:
                        finish_reason = chunk.finish_reason
            finally:
                # Partial output of a failed step is still kept.
                parsed = [(call, *_parse_arguments(call)) for call in calls]
                parts: List[Any] = []
                if "".join(text):
                    parts.append(TextPart(text="".join(text)))
                parts.extend(
                    ToolCallPart(tool_call_id=call.id, tool_name=call.name, input=arguments)
                    for call, arguments, _ in parsed
                )
                if parts:
                    produced.append(ChatMessage(id=message_id, role="assistant", parts=parts))

            if not parsed:
                return finish_reason

            for call, arguments, _ in parsed:
                emit("tool-call", {"toolCallId": call.id, "toolName": call.name, "input": arguments})

            results = await asyncio.gather(
                *(self._invoke(call, arguments, problem) for call, arguments, problem in parsed)
            )
            for part in results:
                if part.is_error:
                    emit(
                        "tool-error",
                        {"toolCallId": part.tool_call_id, "toolName": part.tool_name, **part.output},
                    )
                else:
                    emit(
                        "tool-result",
                        {"toolCallId": part.tool_call_id, "toolName": part.tool_name, "output": part.output},
                    )
            produced.append(ChatMessage(id=new_message_id(), role="tool", parts=list(results)))
            logger.info(
                "Turn step completed",
                data={"conversation_id": self.conversation_id, "step": step + 1, "tool_calls": len(parsed)},
            )

        logger.warning(
            "Turn hit the step limit",
            data={"conversation_id": self.conversation_id, "max_steps": settings.chat_max_steps},
        )
        return "max_steps"

    async def _invoke(
        self, call: ToolCall, arguments: Dict[str, Any], problem: Optional[HRDeskException]
    ) -> ToolResultPart:
        try:
            if problem is not None:
                raise problem
            output = await asyncio.to_thread(self.registry.dispatch, call.name, arguments, self.ctx)
        except HRDeskException as exc:
            return ToolResultPart(
                tool_call_id=call.id,
                tool_name=call.name,
                output={"error": {"code": exc.code, "message": exc.message}},
                is_error=True,
            )
        except Exception as exc:
            logger.error(
                f"Tool '{call.name}' crashed: {type(exc).__name__}",
                data={"conversation_id": self.conversation_id, "error": str(exc)},
            )
            return ToolResultPart(
                tool_call_id=call.id,
                tool_name=call.name,
                output={"error": {"code": "E5000", "message": "Tool failed unexpectedly"}},
                is_error=True,
            )
        return ToolResultPart(tool_call_id=call.id, tool_name=call.name, output=output)


_TURN_TASKS: set[asyncio.Task] = set()


def schedule_turn(orchestrator: TurnOrchestrator, messages: Sequence[ChatMessage]) -> asyncio.Queue:
    """Run the turn in a background task and return the queue it reports to.

    Items are ``(event_type, payload)`` tuples; ``None`` marks the end.
    """
    queue: asyncio.Queue = asyncio.Queue()

    def emit(event_type: str, payload: Dict[str, Any]) -> None:
        queue.put_nowait((event_type, payload))

    async def drive() -> None:
        try:
            with bind_context(orchestrator.ctx):
                await orchestrator.run(messages, emit)
        except Exception as exc:
            logger.error(
                f"Turn task failed: {type(exc).__name__}",
                data={"conversation_id": orchestrator.conversation_id, "error": str(exc)},
            )
            emit(
                "error",
                {
                    "conversationId": orchestrator.conversation_id,
                    "error": {"code": "E5000", "message": "Turn failed"},
                },
            )
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(drive())
    _TURN_TASKS.add(task)
    task.add_done_callback(_TURN_TASKS.discard)
    return queue


async def wait_for_turns(timeout: Optional[float] = None) -> None:
    """Wait for in-flight turns, e.g. before shutdown."""
    if _TURN_TASKS:
        await asyncio.wait(set(_TURN_TASKS), timeout=timeout)


def pending_turns() -> int:
    return len(_TURN_TASKS)

"""v1 chat endpoints.

POST starts a turn and streams its events; GET re-reads a conversation's
stored history without running a turn.
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from hrdesk.agents.chat import TurnOrchestrator, schedule_turn
from hrdesk.agents.conversation import ChatMessage
from hrdesk.agents.hr import ExecutionContext, get_tool_registry
from hrdesk.auth.dependencies import get_execution_context
from hrdesk.config import get_settings
from hrdesk.core.logging import get_logger
from hrdesk.streaming.sse import SSE_HEADERS, format_sse_event, format_sse_ping

logger = get_logger(__name__)
router = APIRouter(prefix="/chat", tags=["v1-chat"])

CONVERSATION_HEADER = "X-Conversation-Id"


class ChatTurnRequest(BaseModel):
    """Body of a chat turn."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    messages: List[ChatMessage] = Field(min_length=1)
    stream: bool = True


def _create_orchestrator(request: Request, ctx: ExecutionContext) -> TurnOrchestrator:
    registry = getattr(request.app.state, "provider_registry", None)
    provider = registry.get_provider() if registry else None
    if provider is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No providers available")
    return TurnOrchestrator(ctx, provider, get_tool_registry(), model=registry.default_model)


def _title_for(messages: List[ChatMessage]) -> Optional[str]:
    for message in messages:
        if message.role == "user" and message.text():
            return message.text()
    return None


@router.post("")
async def post_chat_turn(
    body: ChatTurnRequest,
    request: Request,
    ctx: ExecutionContext = Depends(get_execution_context),
):
    """Run a chat turn (streaming by default)."""
    orchestrator = _create_orchestrator(request, ctx)
    conversation_id, is_new = await asyncio.to_thread(
        orchestrator.resolve, body.conversation_id, _title_for(body.messages)
    )
    headers = {CONVERSATION_HEADER: conversation_id} if is_new else {}
    logger.info(
        "Chat turn accepted",
        data={"conversation_id": conversation_id, "is_new": is_new, "user_id": ctx.actor_id},
    )

    # The turn runs in its own task either way, so a dropped client never cancels it.
    queue = schedule_turn(orchestrator, body.messages)

    if not body.stream:
        while await queue.get() is not None:
            pass
        if orchestrator.result is None:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Turn failed")
        return JSONResponse(content=orchestrator.result.to_dict(), headers=headers)

    ping_interval = get_settings().sse_ping_interval_seconds

    async def event_stream():
        seq = 0
        while True:
            try:
                item = await asyncio.wait_for(queue.get(), timeout=ping_interval)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    logger.info("Client left mid-turn", data={"conversation_id": conversation_id})
                    break
                yield format_sse_ping()
                continue
            if item is None:
                break
            seq += 1
            event_type, payload = item
            yield format_sse_event(seq, event_type, payload)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, **headers},
    )


@router.get("")
async def get_conversation(
    conversation_id: Optional[str] = None,
    ctx: ExecutionContext = Depends(get_execution_context),
):
    """Stored message sequence of a conversation."""
    if not conversation_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="conversation_id is required")

    orchestrator = TurnOrchestrator(ctx, provider=None, registry=get_tool_registry())
    messages = await asyncio.to_thread(orchestrator.resume, conversation_id)
    return {"conversationId": conversation_id, "messages": messages}

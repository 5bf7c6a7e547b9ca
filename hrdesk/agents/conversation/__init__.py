"""Conversation store and message model."""

from .conversation_agent import ConversationStore, finalize_messages
from .messages import (
    ChatMessage,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    new_message_id,
    parse_messages,
    reconcile_messages,
    validate_history,
)

__all__ = [
    "ChatMessage",
    "ConversationStore",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "finalize_messages",
    "new_message_id",
    "parse_messages",
    "reconcile_messages",
    "validate_history",
]

"""Chat turn orchestration."""

from .chat_agent import (
    TurnOrchestrator,
    TurnResult,
    TurnState,
    pending_turns,
    schedule_turn,
    to_provider_messages,
    wait_for_turns,
)

__all__ = [
    "TurnOrchestrator",
    "TurnResult",
    "TurnState",
    "pending_turns",
    "schedule_turn",
    "to_provider_messages",
    "wait_for_turns",
]

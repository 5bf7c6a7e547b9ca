"""SSE (Server-Sent Events) formatting utilities."""

import json
from typing import Any, Dict

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_event(seq: int, event_type: str, payload: Dict[str, Any]) -> str:
    """Format a single SSE event string.

    Args:
        seq: Sequence number for the event
        event_type: Turn event type (e.g. 'text-delta', 'tool-result', 'finish')
        payload: Dictionary of data to send

    Returns:
        Formatted SSE event string ready for streaming
    """
    return f"id: {seq}\nevent: {event_type}\ndata: {json.dumps(payload, default=str)}\n\n"


def format_sse_ping() -> str:
    """Comment line that keeps idle connections open."""
    return ": ping\n\n"

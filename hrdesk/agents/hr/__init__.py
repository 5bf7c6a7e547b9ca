"""HR tools: catalog, dispatch and the per-turn execution context."""

from .context import ExecutionContext, bind_context, current_context
from .registry import ToolOutcome, ToolRegistry, ToolSpec, get_tool_registry, hr_tool

__all__ = [
    "ExecutionContext",
    "ToolOutcome",
    "ToolRegistry",
    "ToolSpec",
    "bind_context",
    "current_context",
    "get_tool_registry",
    "hr_tool",
]

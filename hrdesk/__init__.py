"""HRDesk: conversational HR-operations assistant backend."""

__version__ = "0.1.0"

"""HRDesk agents.

- ``hr``: HR tool catalog, permission-checked dispatch and execution context.
- ``conversation``: durable conversation history.
- ``chat``: the turn orchestrator tying providers, tools and history together.
"""

"""Execution context carrier for HR tool calls.

A turn binds its caller once with :func:`bind_context`; every tool call made
inside that scope (including calls moved to worker threads through
``asyncio.to_thread``, which copies the current context) authorizes against
the same caller. Concurrent turns run in separate asyncio tasks and each task
owns its own copy of the context, so bindings never cross between callers.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Optional

from hrdesk.auth.rbac import Role, can_access_record, parse_role
from hrdesk.core.exceptions import AuthorizationError, ExecutionContextError


@dataclass(frozen=True)
class ExecutionContext:
    """The authenticated caller of one turn."""

    actor_id: str
    role: Role
    employee_id: Optional[str] = None

    @property
    def owner_key(self) -> str:
        """Identifier compared against a record's owning employee id."""
        return self.employee_id or self.actor_id

    def can_access(self, record_owner_id: Optional[str]) -> bool:
        return can_access_record(self.role, record_owner_id, self.owner_key)

    @classmethod
    def for_user(cls, user) -> "ExecutionContext":
        role = parse_role(user.role)
        if role is None:
            raise AuthorizationError(f"Unrecognized role: {user.role}")
        return cls(actor_id=user.id, role=role, employee_id=user.employee_id)


_current_context: ContextVar[Optional[ExecutionContext]] = ContextVar(
    "hr_execution_context", default=None
)


@contextmanager
def bind_context(ctx: ExecutionContext) -> Iterator[ExecutionContext]:
    """Bind ``ctx`` for the current task or thread until the block exits."""
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def current_context() -> ExecutionContext:
    ctx = _current_context.get()
    if ctx is None:
        raise ExecutionContextError()
    return ctx

"""Tests for the per-turn execution context carrier."""

import asyncio
from types import SimpleNamespace

import pytest

from hrdesk.agents.hr import ExecutionContext, bind_context, current_context
from hrdesk.auth.rbac import Role
from hrdesk.core.exceptions import AuthorizationError, ExecutionContextError


def test_unbound_context_raises():
    with pytest.raises(ExecutionContextError):
        current_context()


def test_binding_is_scoped_to_block():
    ctx = ExecutionContext(actor_id="u1", role=Role.ADMIN)
    with bind_context(ctx):
        assert current_context() is ctx
        inner = ExecutionContext(actor_id="u2", role=Role.MEMBER)
        with bind_context(inner):
            assert current_context() is inner
        assert current_context() is ctx
    with pytest.raises(ExecutionContextError):
        current_context()


def test_for_user_uses_employee_link():
    user = SimpleNamespace(id="u1", role="member", employee_id="E1")
    ctx = ExecutionContext.for_user(user)
    assert ctx.role is Role.MEMBER
    assert ctx.owner_key == "E1"
    assert ctx.can_access("E1")
    assert not ctx.can_access("E2")


def test_for_user_rejects_unknown_role():
    with pytest.raises(AuthorizationError):
        ExecutionContext.for_user(SimpleNamespace(id="u1", role="intern", employee_id=None))


@pytest.mark.asyncio
async def test_concurrent_turns_never_share_a_binding():
    seen = {}

    async def turn(actor_id: str, role: Role) -> None:
        with bind_context(ExecutionContext(actor_id=actor_id, role=role)):
            for _ in range(5):
                await asyncio.sleep(0)
                # Worker threads inherit the caller's binding
                observed = await asyncio.to_thread(lambda: current_context().actor_id)
                assert observed == actor_id
            seen[actor_id] = current_context().role

    await asyncio.gather(
        turn("admin-1", Role.ADMIN),
        turn("member-1", Role.MEMBER),
        turn("finance-1", Role.FINANCE_REVIEWER),
    )
    assert seen == {
        "admin-1": Role.ADMIN,
        "member-1": Role.MEMBER,
        "finance-1": Role.FINANCE_REVIEWER,
    }
    with pytest.raises(ExecutionContextError):
        current_context()

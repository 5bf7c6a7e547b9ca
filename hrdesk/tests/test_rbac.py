"""Tests for the permission policy."""

import pytest

from hrdesk.auth.rbac import (
    POLICY,
    Action,
    EntityKind,
    Role,
    allowed,
    can_access_record,
    parse_role,
    permissions_for,
)

pytestmark = pytest.mark.security


def test_policy_is_total():
    for role in Role:
        for entity in EntityKind:
            assert entity in POLICY[role]


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("entity", list(EntityKind))
def test_allowed_matches_table(role, entity):
    for action in Action:
        assert allowed(role, action, entity) == (action in POLICY[role][entity])


def test_unknown_role_is_denied_everything():
    for entity in EntityKind:
        for action in Action:
            assert allowed("intern", action, entity) is False
    assert parse_role("intern") is None
    assert permissions_for("intern") == {entity.value: [] for entity in EntityKind}


def test_roles_parse_from_wire_values():
    assert parse_role("admin") is Role.ADMIN
    assert parse_role(Role.MANAGER) is Role.MANAGER


def test_member_sees_only_own_records():
    assert can_access_record(Role.MEMBER, "E1", "E1") is True
    assert can_access_record(Role.MEMBER, "E2", "E1") is False
    assert can_access_record(Role.MEMBER, None, "E1") is False
    assert can_access_record("member", "E2", "E1") is False


@pytest.mark.parametrize("role", [Role.ADMIN, Role.MANAGER, Role.FINANCE_REVIEWER])
def test_unscoped_roles_see_every_record(role):
    assert can_access_record(role, "E2", "E1") is True
    assert can_access_record(role, None, "E1") is True


def test_unknown_role_owns_nothing():
    assert can_access_record("intern", "E1", "E1") is False


def test_member_cannot_write_employees():
    assert allowed(Role.MEMBER, Action.READ, EntityKind.EMPLOYEE)
    assert not allowed(Role.MEMBER, Action.UPDATE, EntityKind.EMPLOYEE)
    assert not allowed(Role.MEMBER, Action.READ, EntityKind.USER)


def test_permissions_for_wire_form():
    perms = permissions_for(Role.FINANCE_REVIEWER)
    assert perms["payroll"] == ["approve", "read", "update"]
    assert perms["user"] == []

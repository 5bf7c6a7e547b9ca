"""Role-based permission policy.

The policy is a static table ``Role -> EntityKind -> frozenset[Action]``.
It is checked for totality when this module is imported, so a role or
entity kind added without a matching row fails at startup instead of
silently denying (or allowing) at request time.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    FINANCE_REVIEWER = "finance_reviewer"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"


class EntityKind(str, Enum):
    EMPLOYEE = "employee"
    CONTRACT = "contract"
    LETTER = "letter"
    ATTENDANCE = "attendance"
    PAYROLL = "payroll"
    BENEFIT = "benefit"
    USER = "user"


def _actions(*names: Action) -> FrozenSet[Action]:
    return frozenset(names)


_CRUD = _actions(Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE)
_NONE: FrozenSet[Action] = frozenset()

POLICY: Mapping[Role, Mapping[EntityKind, FrozenSet[Action]]] = {
    Role.ADMIN: {
        EntityKind.EMPLOYEE: _CRUD,
        EntityKind.CONTRACT: _CRUD,
        EntityKind.LETTER: _CRUD,
        EntityKind.ATTENDANCE: _CRUD | {Action.APPROVE},
        EntityKind.PAYROLL: _CRUD | {Action.APPROVE},
        EntityKind.BENEFIT: _CRUD,
        EntityKind.USER: _CRUD,
    },
    Role.MANAGER: {
        EntityKind.EMPLOYEE: _actions(Action.READ, Action.UPDATE),
        EntityKind.CONTRACT: _actions(Action.READ, Action.UPDATE),
        EntityKind.LETTER: _actions(Action.READ, Action.UPDATE),
        EntityKind.ATTENDANCE: _actions(Action.READ, Action.UPDATE, Action.APPROVE),
        EntityKind.PAYROLL: _actions(Action.READ, Action.UPDATE, Action.APPROVE),
        EntityKind.BENEFIT: _actions(Action.READ, Action.UPDATE),
        EntityKind.USER: _actions(Action.READ),
    },
    Role.MEMBER: {
        EntityKind.EMPLOYEE: _actions(Action.READ),
        EntityKind.CONTRACT: _actions(Action.READ),
        EntityKind.LETTER: _actions(Action.READ),
        EntityKind.ATTENDANCE: _actions(Action.CREATE, Action.READ, Action.UPDATE),
        EntityKind.PAYROLL: _actions(Action.READ),
        EntityKind.BENEFIT: _actions(Action.READ),
        EntityKind.USER: _NONE,
    },
    Role.FINANCE_REVIEWER: {
        EntityKind.EMPLOYEE: _actions(Action.READ),
        EntityKind.CONTRACT: _actions(Action.READ),
        EntityKind.LETTER: _actions(Action.READ),
        EntityKind.ATTENDANCE: _actions(Action.READ),
        EntityKind.PAYROLL: _actions(Action.READ, Action.UPDATE, Action.APPROVE),
        EntityKind.BENEFIT: _actions(Action.READ),
        EntityKind.USER: _NONE,
    },
}

# Roles whose access is not scoped to their own records.
_UNSCOPED_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.MANAGER, Role.FINANCE_REVIEWER})


def _check_policy_is_total(policy: Mapping[Role, Mapping[EntityKind, FrozenSet[Action]]]) -> None:
    missing = [
        f"{role.value}/{entity.value}"
        for role in Role
        for entity in EntityKind
        if entity not in policy.get(role, {})
    ]
    if missing:
        raise RuntimeError(f"Permission policy has no row for: {', '.join(missing)}")


_check_policy_is_total(POLICY)


def parse_role(value: Any) -> Optional[Role]:
    """Coerce a stored or wire role value, returning None when unrecognized."""
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value))
    except ValueError:
        return None


def allowed(role: Any, action: Action, entity: EntityKind) -> bool:
    """Return True when ``role`` may perform ``action`` on ``entity``.

    Unknown roles are denied.
    """
    resolved = parse_role(role)
    if resolved is None:
        return False
    return Action(action) in POLICY[resolved][EntityKind(entity)]


def can_access_record(role: Any, record_owner_id: Optional[str], caller_id: Optional[str]) -> bool:
    """Record-level ownership check.

    Admin, manager and finance reviewer see every record. A member only
    sees records owned by their own employee id. Any other role sees nothing.
    """
    resolved = parse_role(role)
    if resolved in _UNSCOPED_ROLES:
        return True
    if resolved is Role.MEMBER:
        return record_owner_id is not None and record_owner_id == caller_id
    return False


def permissions_for(role: Any) -> Dict[str, list]:
    """The policy row of a role in wire form, for catalog endpoints."""
    resolved = parse_role(role)
    if resolved is None:
        return {entity.value: [] for entity in EntityKind}
    return {
        entity.value: sorted(action.value for action in actions)
        for entity, actions in POLICY[resolved].items()
    }

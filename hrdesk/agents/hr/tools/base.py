"""Helpers shared by the tool bodies."""

from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.core.exceptions import AuthorizationError, NotFoundError
from hrdesk.db.models import Employee

RecordT = TypeVar("RecordT")


def load_record(db: DBSession, model: Type[RecordT], record_id: str, label: str) -> RecordT:
    """Fetch a record by primary key or raise :class:`NotFoundError`."""
    record = db.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label} not found: {record_id}")
    return record


def ensure_access(
    ctx: ExecutionContext, owner_id: Optional[str], action: Action, entity: EntityKind
) -> None:
    """Record-level ownership check. Raises before anything is written."""
    if not ctx.can_access(owner_id):
        raise AuthorizationError(
            f"Cannot {action.value} this {entity.value} record",
            details={"action": action.value, "entity": entity.value},
        )


def load_owned(
    db: DBSession,
    ctx: ExecutionContext,
    model: Type[RecordT],
    record_id: str,
    action: Action,
    entity: EntityKind,
    label: str,
) -> RecordT:
    record = load_record(db, model, record_id, label)
    ensure_access(ctx, record.owner_id, action, entity)
    return record


def load_target_employee(
    db: DBSession, ctx: ExecutionContext, employee_id: str, action: Action, entity: EntityKind
) -> Employee:
    """Resolve the employee a new record will belong to, checking ownership."""
    employee = load_record(db, Employee, employee_id, "Employee")
    ensure_access(ctx, employee.id, action, entity)
    return employee


def visible(ctx: ExecutionContext, records: Iterable[RecordT]) -> List[RecordT]:
    """Post-filter a result set through the ownership predicate, row by row."""
    return [record for record in records if ctx.can_access(record.owner_id)]


def apply_changes(record: Any, changes: Dict[str, Any]) -> List[str]:
    """Set every non-None value on ``record``; return the fields touched."""
    touched = []
    for name, value in changes.items():
        if value is None:
            continue
        setattr(record, name, value)
        touched.append(name)
    return touched


def listing(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"items": items, "count": len(items)}

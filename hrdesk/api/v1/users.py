"""v1 user administration endpoints.

Every call goes through the permission policy for the ``user`` entity and is
recorded in the audit trail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr import ExecutionContext
from hrdesk.agents.hr.serializers import serialize_user
from hrdesk.auth.dependencies import get_execution_context
from hrdesk.auth.password import hash_password, validate_password_complexity
from hrdesk.auth.rbac import Action, EntityKind, Role, allowed
from hrdesk.core.exceptions import AuthorizationError, InvalidInputError, NotFoundError
from hrdesk.core.logging import get_logger
from hrdesk.db import get_db
from hrdesk.db.models import Employee, User
from hrdesk.services.audit_service import record_audit_entry

logger = get_logger(__name__)
router = APIRouter(prefix="/admin/users", tags=["v1-admin-users"])


class CreateUserRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=64)
    password: str
    role: Role = Role.MEMBER
    employee_id: Optional[str] = Field(default=None, alias="employeeId")

    model_config = {"populate_by_name": True}


class UpdateUserRequest(BaseModel):
    role: Optional[Role] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    employee_id: Optional[str] = Field(default=None, alias="employeeId")

    model_config = {"populate_by_name": True}


def _require(ctx: ExecutionContext, action: Action) -> None:
    if not allowed(ctx.role, action, EntityKind.USER):
        logger.warning(
            "User administration denied",
            data={"actor_id": ctx.actor_id, "role": ctx.role.value, "action": action.value},
        )
        raise AuthorizationError(
            f"Role '{ctx.role.value}' cannot {action.value} user",
            details={"action": action.value, "entity": EntityKind.USER.value},
        )


def _check_employee(db: DBSession, employee_id: Optional[str]) -> None:
    if employee_id and db.get(Employee, employee_id) is None:
        raise NotFoundError("Employee not found")


@router.get("")
async def list_users(
    limit: int = 100,
    offset: int = 0,
    db: DBSession = Depends(get_db),
    ctx: ExecutionContext = Depends(get_execution_context),
) -> List[dict]:
    """List user accounts."""
    _require(ctx, Action.READ)
    users = db.query(User).order_by(User.created_at.desc()).offset(offset).limit(limit).all()
    record_audit_entry(
        db,
        entity_kind=EntityKind.USER.value,
        entity_id=None,
        action=Action.READ.value,
        actor_id=ctx.actor_id,
        detail={"limit": limit, "offset": offset, "count": len(users)},
    )
    return [serialize_user(u) for u in users]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: CreateUserRequest,
    db: DBSession = Depends(get_db),
    ctx: ExecutionContext = Depends(get_execution_context),
) -> dict:
    """Create a user account with an Argon2id password hash."""
    _require(ctx, Action.CREATE)
    problem = validate_password_complexity(body.password)
    if problem:
        raise InvalidInputError(problem, details={"field": "password"})
    _check_employee(db, body.employee_id)

    user = User(
        email=str(body.email).lower(),
        username=body.username,
        hashed_password=hash_password(body.password),
        role=body.role.value,
        employee_id=body.employee_id,
        is_active=True,
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email or username already registered",
        ) from exc
    db.refresh(user)

    logger.info("User created", data={"user_id": user.id, "role": user.role, "actor_id": ctx.actor_id})
    record_audit_entry(
        db,
        entity_kind=EntityKind.USER.value,
        entity_id=user.id,
        action=Action.CREATE.value,
        actor_id=ctx.actor_id,
        detail={"username": user.username, "role": user.role, "employeeId": user.employee_id},
    )
    return serialize_user(user)


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    db: DBSession = Depends(get_db),
    ctx: ExecutionContext = Depends(get_execution_context),
) -> dict:
    """Change a user's role, active flag or employee link."""
    _require(ctx, Action.UPDATE)
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    changes = body.model_dump(exclude_unset=True)
    if user.id == ctx.actor_id:
        demoted = changes.get("role") not in (None, ctx.role)
        if demoted or changes.get("is_active") is False:
            raise InvalidInputError("Cannot demote or deactivate your own account")
    if "employee_id" in changes:
        _check_employee(db, changes["employee_id"])

    if "role" in changes and changes["role"] is not None:
        user.role = changes["role"].value
    if "is_active" in changes and changes["is_active"] is not None:
        user.is_active = changes["is_active"]
    if "employee_id" in changes:
        user.employee_id = changes["employee_id"]
    db.commit()
    db.refresh(user)

    record_audit_entry(
        db,
        entity_kind=EntityKind.USER.value,
        entity_id=user.id,
        action=Action.UPDATE.value,
        actor_id=ctx.actor_id,
        detail=body.model_dump(mode="json", by_alias=True, exclude_unset=True),
    )
    return serialize_user(user)

"""Employee tools."""

from sqlalchemy import or_
from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.enums import EmploymentStatus
from hrdesk.agents.hr.payroll import amounts_to_json, parse_amount_mapping, quantize_money, to_decimal
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import (
    CreateEmployeeInput,
    EmployeeRefInput,
    GetEmployeeInput,
    UpdateEmployeeInput,
)
from hrdesk.agents.hr.serializers import serialize_employee
from hrdesk.agents.hr.tools.base import apply_changes, listing, load_owned, visible
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.core.time import today
from hrdesk.db.models import Employee

_ENTITY = EntityKind.EMPLOYEE


@hr_tool(
    "createEmployee",
    input_model=CreateEmployeeInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Create a new employee record with personal info, job details, salary, and benefits.",
)
def create_employee(db: DBSession, ctx: ExecutionContext, params: CreateEmployeeInput) -> ToolOutcome:
    benefits = parse_amount_mapping(params.benefits, field="benefits")
    employee = Employee(
        first_name=params.first_name,
        last_name=params.last_name,
        national_id=params.national_id,
        date_of_birth=params.date_of_birth,
        gender=params.gender.value,
        phone_number=params.phone_number,
        email=params.email,
        address=params.address,
        job_title=params.job_title,
        department=params.department,
        salary=quantize_money(to_decimal(params.salary)),
        benefits_json=amounts_to_json(benefits) or None,
        leave_balance=params.leave_balance,
        hire_date=today(),
        employment_status=EmploymentStatus.ONBOARDING.value,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return ToolOutcome(serialize_employee(employee), entity_id=employee.id)


@hr_tool(
    "updateEmployee",
    input_model=UpdateEmployeeInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Update an existing employee record. Only specified fields will be updated.",
)
def update_employee(db: DBSession, ctx: ExecutionContext, params: UpdateEmployeeInput) -> ToolOutcome:
    employee = load_owned(db, ctx, Employee, params.employee_id, Action.UPDATE, _ENTITY, "Employee")

    changes = {
        "first_name": params.first_name,
        "last_name": params.last_name,
        "phone_number": params.phone_number,
        "email": params.email,
        "address": params.address,
        "job_title": params.job_title,
        "department": params.department,
        "leave_balance": params.leave_balance,
        "salary": quantize_money(to_decimal(params.salary)) if params.salary is not None else None,
        "employment_status": params.employment_status.value if params.employment_status else None,
    }
    if params.benefits is not None:
        changes["benefits_json"] = amounts_to_json(parse_amount_mapping(params.benefits, field="benefits"))

    touched = apply_changes(employee, changes)
    db.commit()
    db.refresh(employee)
    return ToolOutcome(serialize_employee(employee), entity_id=employee.id, detail={"fields": touched})


@hr_tool(
    "getEmployee",
    input_model=GetEmployeeInput,
    action=Action.READ,
    entity=_ENTITY,
    description="Retrieve employee record(s) by ID or search by name/department.",
)
def get_employee(db: DBSession, ctx: ExecutionContext, params: GetEmployeeInput) -> ToolOutcome:
    if params.employee_id:
        employee = load_owned(db, ctx, Employee, params.employee_id, Action.READ, _ENTITY, "Employee")
        return ToolOutcome(serialize_employee(employee, include_related=True), entity_id=employee.id)

    query = db.query(Employee)
    if params.name:
        pattern = f"%{params.name}%"
        query = query.filter(or_(Employee.first_name.ilike(pattern), Employee.last_name.ilike(pattern)))
    if params.department:
        query = query.filter(Employee.department.ilike(f"%{params.department}%"))

    rows = visible(ctx, query.order_by(Employee.created_at.desc()).all())[: params.limit]
    return ToolOutcome(listing([serialize_employee(e) for e in rows]), detail={"count": len(rows)})


def _set_status(
    db: DBSession, ctx: ExecutionContext, employee_id: str, status: EmploymentStatus, change: str
) -> ToolOutcome:
    employee = load_owned(db, ctx, Employee, employee_id, Action.UPDATE, _ENTITY, "Employee")
    employee.employment_status = status.value
    db.commit()
    db.refresh(employee)
    return ToolOutcome(serialize_employee(employee), entity_id=employee.id, detail={"change": change})


@hr_tool(
    "archiveEmployee",
    input_model=EmployeeRefInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Archive a terminated employee (set employment status to Archived).",
)
def archive_employee(db: DBSession, ctx: ExecutionContext, params: EmployeeRefInput) -> ToolOutcome:
    return _set_status(db, ctx, params.employee_id, EmploymentStatus.ARCHIVED, "archived")


@hr_tool(
    "reactivateEmployee",
    input_model=EmployeeRefInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Reactivate an archived employee (set employment status to Active).",
)
def reactivate_employee(db: DBSession, ctx: ExecutionContext, params: EmployeeRefInput) -> ToolOutcome:
    return _set_status(db, ctx, params.employee_id, EmploymentStatus.ACTIVE, "reactivated")

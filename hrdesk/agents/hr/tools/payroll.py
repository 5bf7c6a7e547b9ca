"""Payroll tools."""

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.enums import PayrollStatus, can_transition_payroll
from hrdesk.agents.hr.payroll import amounts_to_json, compute_payroll, parse_amount_mapping
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import (
    ApprovePayrollInput,
    CalculatePayrollInput,
    GetPayrollInput,
    PaySalaryInput,
)
from hrdesk.agents.hr.serializers import serialize_employee, serialize_payroll
from hrdesk.agents.hr.tools.base import listing, load_owned, load_target_employee, visible
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.config import get_settings
from hrdesk.core.exceptions import InvalidInputError
from hrdesk.db.models import AttendanceRecord, Payroll

_ENTITY = EntityKind.PAYROLL


def _advance(payroll: Payroll, target: PayrollStatus) -> None:
    current = PayrollStatus(payroll.status)
    if not can_transition_payroll(current, target):
        raise InvalidInputError(
            f"Payroll cannot move from {current.value} to {target.value}",
            details={"payrollId": payroll.id, "status": current.value},
        )
    payroll.status = target.value


@hr_tool(
    "calculatePayroll",
    input_model=CalculatePayrollInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Calculate payroll for an employee for a given period (base salary + overtime - deductions).",
)
def calculate_payroll(db: DBSession, ctx: ExecutionContext, params: CalculatePayrollInput) -> ToolOutcome:
    settings = get_settings()
    employee = load_target_employee(db, ctx, params.employee_id, Action.CREATE, _ENTITY)

    overtime = [
        row.overtime_hours or 0
        for row in db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id == employee.id,
            AttendanceRecord.date >= params.period_start,
            AttendanceRecord.date <= params.period_end,
        )
        .order_by(AttendanceRecord.date, AttendanceRecord.id)
        .all()
    ]
    deductions = parse_amount_mapping(params.deductions, field="deductions")
    figures = compute_payroll(
        employee.salary,
        overtime,
        deductions,
        standard_period_hours=settings.payroll_standard_period_hours,
        overtime_multiplier=settings.payroll_overtime_multiplier,
    )

    payroll = Payroll(
        employee_id=employee.id,
        period_start=params.period_start,
        period_end=params.period_end,
        base_salary=figures.base_salary,
        overtime_pay=figures.overtime_pay,
        deductions_json=amounts_to_json(deductions) or None,
        net_salary=figures.net_salary,
        status=PayrollStatus.CALCULATED.value,
    )
    db.add(payroll)
    db.commit()
    db.refresh(payroll)

    result = serialize_payroll(payroll)
    result["overtimeHours"] = float(figures.overtime_hours)
    result["totalDeductions"] = float(figures.total_deductions)
    return ToolOutcome(
        result,
        entity_id=payroll.id,
        detail={"overtimeHours": float(figures.overtime_hours), "netSalary": float(figures.net_salary)},
    )


@hr_tool(
    "getPayroll",
    input_model=GetPayrollInput,
    action=Action.READ,
    entity=_ENTITY,
    description="Retrieve a payroll record by ID, or the latest payroll records of an employee.",
)
def get_payroll(db: DBSession, ctx: ExecutionContext, params: GetPayrollInput) -> ToolOutcome:
    if params.payroll_id:
        payroll = load_owned(db, ctx, Payroll, params.payroll_id, Action.READ, _ENTITY, "Payroll")
        result = serialize_payroll(payroll)
        result["employee"] = serialize_employee(payroll.employee)
        return ToolOutcome(result, entity_id=payroll.id)

    rows = (
        db.query(Payroll)
        .filter(Payroll.employee_id == params.employee_id)
        .order_by(Payroll.period_start.desc())
        .limit(params.limit)
        .all()
    )
    rows = visible(ctx, rows)
    return ToolOutcome(listing([serialize_payroll(p) for p in rows]), detail={"count": len(rows)})


@hr_tool(
    "approvePayroll",
    input_model=ApprovePayrollInput,
    action=Action.APPROVE,
    entity=_ENTITY,
    description="Advance a payroll one approval step: Calculated to Verified, or Verified to Approved.",
)
def approve_payroll(db: DBSession, ctx: ExecutionContext, params: ApprovePayrollInput) -> ToolOutcome:
    payroll = load_owned(db, ctx, Payroll, params.payroll_id, Action.APPROVE, _ENTITY, "Payroll")
    _advance(payroll, PayrollStatus(params.status.value))
    db.commit()
    db.refresh(payroll)
    return ToolOutcome(
        serialize_payroll(payroll),
        entity_id=payroll.id,
        detail={"change": "approved", "status": payroll.status},
    )


@hr_tool(
    "paySalary",
    input_model=PaySalaryInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Mark an approved payroll as paid with its payment date.",
)
def pay_salary(db: DBSession, ctx: ExecutionContext, params: PaySalaryInput) -> ToolOutcome:
    payroll = load_owned(db, ctx, Payroll, params.payroll_id, Action.UPDATE, _ENTITY, "Payroll")
    _advance(payroll, PayrollStatus.PAID)
    payroll.payment_date = params.payment_date
    db.commit()
    db.refresh(payroll)
    return ToolOutcome(serialize_payroll(payroll), entity_id=payroll.id, detail={"change": "paid"})

"""Benefit tools."""

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.payroll import quantize_money, to_decimal
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import AddBenefitInput, EmployeeRefInput, UpdateBenefitInput
from hrdesk.agents.hr.serializers import serialize_benefit
from hrdesk.agents.hr.tools.base import apply_changes, listing, load_owned, load_target_employee, visible
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.core.exceptions import InvalidInputError
from hrdesk.db.models import Benefit

_ENTITY = EntityKind.BENEFIT


@hr_tool(
    "addBenefit",
    input_model=AddBenefitInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Add a benefit to an employee.",
)
def add_benefit(db: DBSession, ctx: ExecutionContext, params: AddBenefitInput) -> ToolOutcome:
    load_target_employee(db, ctx, params.employee_id, Action.CREATE, _ENTITY)
    if params.end_date is not None and params.end_date < params.start_date:
        raise InvalidInputError("endDate must not be before startDate")
    benefit = Benefit(
        employee_id=params.employee_id,
        benefit_type=params.benefit_type.value,
        amount=quantize_money(to_decimal(params.amount)),
        start_date=params.start_date,
        end_date=params.end_date,
    )
    db.add(benefit)
    db.commit()
    db.refresh(benefit)
    return ToolOutcome(serialize_benefit(benefit), entity_id=benefit.id)


@hr_tool(
    "updateBenefit",
    input_model=UpdateBenefitInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Update benefit details.",
)
def update_benefit(db: DBSession, ctx: ExecutionContext, params: UpdateBenefitInput) -> ToolOutcome:
    benefit = load_owned(db, ctx, Benefit, params.benefit_id, Action.UPDATE, _ENTITY, "Benefit")
    touched = apply_changes(
        benefit,
        {
            "benefit_type": params.benefit_type.value if params.benefit_type else None,
            "amount": quantize_money(to_decimal(params.amount)) if params.amount is not None else None,
            "start_date": params.start_date,
            "end_date": params.end_date,
        },
    )
    if benefit.end_date is not None and benefit.end_date < benefit.start_date:
        raise InvalidInputError("endDate must not be before startDate")
    db.commit()
    db.refresh(benefit)
    return ToolOutcome(serialize_benefit(benefit), entity_id=benefit.id, detail={"fields": touched})


@hr_tool(
    "getBenefits",
    input_model=EmployeeRefInput,
    action=Action.READ,
    entity=_ENTITY,
    description="Retrieve all benefits for an employee.",
)
def get_benefits(db: DBSession, ctx: ExecutionContext, params: EmployeeRefInput) -> ToolOutcome:
    rows = (
        db.query(Benefit)
        .filter(Benefit.employee_id == params.employee_id)
        .order_by(Benefit.start_date.desc())
        .all()
    )
    rows = visible(ctx, rows)
    return ToolOutcome(listing([serialize_benefit(b) for b in rows]), detail={"count": len(rows)})

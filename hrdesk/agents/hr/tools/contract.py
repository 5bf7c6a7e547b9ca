"""Contract tools."""

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import (
    CreateContractInput,
    GetContractInput,
    TerminateContractInput,
    UpdateContractInput,
)
from hrdesk.agents.hr.serializers import serialize_contract, serialize_employee
from hrdesk.agents.hr.tools.base import apply_changes, listing, load_owned, load_target_employee, visible
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.core.exceptions import InvalidInputError
from hrdesk.db.models import Contract

_ENTITY = EntityKind.CONTRACT


@hr_tool(
    "createContract",
    input_model=CreateContractInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Create a new contract for an employee.",
)
def create_contract(db: DBSession, ctx: ExecutionContext, params: CreateContractInput) -> ToolOutcome:
    load_target_employee(db, ctx, params.employee_id, Action.CREATE, _ENTITY)
    contract = Contract(
        employee_id=params.employee_id,
        contract_type=params.contract_type.value,
        start_date=params.start_date,
        end_date=params.end_date,
        document_url=params.document_url,
    )
    db.add(contract)
    db.commit()
    db.refresh(contract)
    return ToolOutcome(serialize_contract(contract), entity_id=contract.id)


@hr_tool(
    "updateContract",
    input_model=UpdateContractInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Update contract details.",
)
def update_contract(db: DBSession, ctx: ExecutionContext, params: UpdateContractInput) -> ToolOutcome:
    contract = load_owned(db, ctx, Contract, params.contract_id, Action.UPDATE, _ENTITY, "Contract")
    touched = apply_changes(
        contract,
        {
            "contract_type": params.contract_type.value if params.contract_type else None,
            "start_date": params.start_date,
            "end_date": params.end_date,
            "signed_by_employee": params.signed_by_employee,
            "signed_by_hr": params.signed_by_hr,
            "document_url": params.document_url,
        },
    )
    if contract.end_date is not None and contract.end_date < contract.start_date:
        raise InvalidInputError("endDate must not be before startDate")
    db.commit()
    db.refresh(contract)
    return ToolOutcome(serialize_contract(contract), entity_id=contract.id, detail={"fields": touched})


@hr_tool(
    "getContract",
    input_model=GetContractInput,
    action=Action.READ,
    entity=_ENTITY,
    description="Retrieve a contract by ID, or all contracts of an employee.",
)
def get_contract(db: DBSession, ctx: ExecutionContext, params: GetContractInput) -> ToolOutcome:
    if params.contract_id:
        contract = load_owned(db, ctx, Contract, params.contract_id, Action.READ, _ENTITY, "Contract")
        result = serialize_contract(contract)
        result["employee"] = serialize_employee(contract.employee)
        return ToolOutcome(result, entity_id=contract.id)

    rows = (
        db.query(Contract)
        .filter(Contract.employee_id == params.employee_id)
        .order_by(Contract.start_date.desc())
        .all()
    )
    rows = visible(ctx, rows)
    return ToolOutcome(listing([serialize_contract(c) for c in rows]), detail={"count": len(rows)})


@hr_tool(
    "terminateContract",
    input_model=TerminateContractInput,
    action=Action.UPDATE,
    entity=_ENTITY,
    description="Terminate a contract by setting its end date.",
)
def terminate_contract(db: DBSession, ctx: ExecutionContext, params: TerminateContractInput) -> ToolOutcome:
    contract = load_owned(db, ctx, Contract, params.contract_id, Action.UPDATE, _ENTITY, "Contract")
    if params.termination_date < contract.start_date:
        raise InvalidInputError("terminationDate must not be before the contract start date")
    contract.end_date = params.termination_date
    db.commit()
    db.refresh(contract)
    return ToolOutcome(serialize_contract(contract), entity_id=contract.id, detail={"change": "terminated"})

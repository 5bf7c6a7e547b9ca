"""Administrative letter tools."""

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import EmployeeRefInput, GenerateLetterInput
from hrdesk.agents.hr.serializers import serialize_letter
from hrdesk.agents.hr.tools.base import listing, load_target_employee, visible
from hrdesk.auth.rbac import Action, EntityKind
from hrdesk.core.time import today
from hrdesk.db.models import AdministrativeLetter

_ENTITY = EntityKind.LETTER


@hr_tool(
    "generateLetter",
    input_model=GenerateLetterInput,
    action=Action.CREATE,
    entity=_ENTITY,
    description="Generate an administrative letter (confirmation, termination, promotion, etc.) for an employee.",
)
def generate_letter(db: DBSession, ctx: ExecutionContext, params: GenerateLetterInput) -> ToolOutcome:
    load_target_employee(db, ctx, params.employee_id, Action.CREATE, _ENTITY)
    letter = AdministrativeLetter(
        employee_id=params.employee_id,
        letter_type=params.letter_type.value,
        content=params.content,
        document_url=params.document_url,
        issued_date=today(),
    )
    db.add(letter)
    db.commit()
    db.refresh(letter)
    return ToolOutcome(serialize_letter(letter), entity_id=letter.id)


@hr_tool(
    "getLetters",
    input_model=EmployeeRefInput,
    action=Action.READ,
    entity=_ENTITY,
    description="Retrieve all administrative letters for an employee.",
)
def get_letters(db: DBSession, ctx: ExecutionContext, params: EmployeeRefInput) -> ToolOutcome:
    rows = (
        db.query(AdministrativeLetter)
        .filter(AdministrativeLetter.employee_id == params.employee_id)
        .order_by(AdministrativeLetter.issued_date.desc())
        .all()
    )
    rows = visible(ctx, rows)
    return ToolOutcome(listing([serialize_letter(letter) for letter in rows]), detail={"count": len(rows)})

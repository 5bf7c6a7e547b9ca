"""Audit log tool (admin only)."""

from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext
from hrdesk.agents.hr.registry import ToolOutcome, hr_tool
from hrdesk.agents.hr.schemas import GetAuditLogsInput
from hrdesk.agents.hr.tools.base import listing
from hrdesk.auth.rbac import Action, Role
from hrdesk.core.time import as_naive_utc
from hrdesk.services.audit_service import audit_entry_to_dict, query_audit_logs


@hr_tool(
    "getAuditLogs",
    input_model=GetAuditLogsInput,
    action=Action.READ,
    entity=None,
    roles=[Role.ADMIN],
    description="Retrieve audit logs with optional filters (entity kind, entity id, actor, date range).",
)
def get_audit_logs(db: DBSession, ctx: ExecutionContext, params: GetAuditLogsInput) -> ToolOutcome:
    entries = query_audit_logs(
        db,
        entity_kind=params.entity_kind.value if params.entity_kind else None,
        entity_id=params.entity_id,
        actor_id=params.actor_id,
        start=as_naive_utc(params.start_date),
        end=as_naive_utc(params.end_date),
        limit=params.limit,
    )
    return ToolOutcome(listing([audit_entry_to_dict(e) for e in entries]), audited=False)

"""v1 audit log endpoint (admin only)."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session as DBSession

from hrdesk.auth.dependencies import get_admin_user
from hrdesk.auth.rbac import EntityKind
from hrdesk.core.logging import get_logger
from hrdesk.core.time import as_naive_utc
from hrdesk.db import get_db
from hrdesk.db.models import User
from hrdesk.services.audit_service import audit_entry_to_dict, query_audit_logs

logger = get_logger(__name__)
router = APIRouter(prefix="/audit", tags=["v1-audit"])


class AuditEntryResponse(BaseModel):
    id: str
    entityKind: str
    entityId: Optional[str]
    action: str
    actorId: Optional[str]
    detail: Optional[Dict[str, Any]]
    timestamp: Optional[str]


class AuditLogListResponse(BaseModel):
    items: List[AuditEntryResponse]
    count: int


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    entity_kind: Optional[EntityKind] = None,
    entity_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: DBSession = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    """Newest-first audit entries matching the filters (admin only)."""
    entries = query_audit_logs(
        db,
        entity_kind=entity_kind.value if entity_kind else None,
        entity_id=entity_id,
        actor_id=actor_id,
        start=as_naive_utc(from_date),
        end=as_naive_utc(to_date),
        limit=limit,
    )
    logger.debug("Audit query", data={"admin_id": admin.id, "count": len(entries)})
    items = [audit_entry_to_dict(entry) for entry in entries]
    return {"items": items, "count": len(items)}

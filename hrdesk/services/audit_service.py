"""Audit trail service.

Entries are appended after the primary write has committed. Recording is
best-effort: a failure is rolled back and logged, and never reaches the
caller of the operation being audited.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session as DBSession

from hrdesk.config import get_settings
from hrdesk.core.exceptions import AuditWriteFailure
from hrdesk.core.logging import get_logger
from hrdesk.db.models import AuditLog

logger = get_logger(__name__)


def record_audit_entry(
    db: Optional[DBSession],
    *,
    entity_kind: str,
    entity_id: Optional[str],
    action: str,
    actor_id: Optional[str],
    detail: Optional[dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """Append one audit entry. Returns the row, or None when the write failed."""
    if db is None:
        logger.error(
            "Audit write skipped: no database session",
            data={"entity_kind": entity_kind, "entity_id": entity_id, "action": action},
        )
        return None

    try:
        entry = AuditLog(
            entity_kind=entity_kind,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            detail_json=detail,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as exc:
        db.rollback()
        failure = AuditWriteFailure(f"Audit write failed: {type(exc).__name__}: {exc}")
        logger.error(
            failure.message,
            data={
                "code": failure.code,
                "entity_kind": entity_kind,
                "entity_id": entity_id,
                "action": action,
                "actor_id": actor_id,
            },
        )
        return None


def query_audit_logs(
    db: DBSession,
    *,
    entity_kind: Optional[str] = None,
    entity_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[AuditLog]:
    """Newest-first audit entries matching every supplied filter.

    ``limit`` defaults to the configured default and is clamped to the
    configured maximum.
    """
    settings = get_settings()
    if limit is None:
        limit = settings.audit_query_default_limit
    limit = max(1, min(int(limit), settings.audit_query_max_limit))

    query = db.query(AuditLog)
    if entity_kind:
        query = query.filter(AuditLog.entity_kind == entity_kind)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)
    if start is not None:
        query = query.filter(AuditLog.created_at >= start)
    if end is not None:
        query = query.filter(AuditLog.created_at <= end)

    return query.order_by(AuditLog.created_at.desc(), AuditLog.id).limit(limit).all()


def audit_entry_to_dict(entry: AuditLog) -> dict[str, Any]:
    return {
        "id": entry.id,
        "entityKind": entry.entity_kind,
        "entityId": entry.entity_id,
        "action": entry.action,
        "actorId": entry.actor_id,
        "detail": entry.detail_json,
        "timestamp": entry.created_at.isoformat() if entry.created_at else None,
    }

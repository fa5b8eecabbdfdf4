# Overview: Append-only audit trail written inside the caller's transaction.

from __future__ import annotations

import json

from ..extensions import db
from ..models import AuditLog


def record_audit(
    *,
    tenant_id: int,
    action: str,
    entity: str,
    entity_id: int | None = None,
    user_id: int | None = None,
    details: dict | None = None,
) -> AuditLog:
    """
    Append an audit row to the current transaction.

    No commit here: the row lands or disappears together with the change
    it describes.
    """
    entry = AuditLog(
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=json.dumps(details, default=str, sort_keys=True) if details else None,
    )
    db.session.add(entry)
    return entry


def list_audit_logs(tenant_id: int, *, entity: str | None = None, entity_id: int | None = None, limit: int = 100) -> list[AuditLog]:
    query = db.session.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)
    if entity:
        query = query.filter(AuditLog.entity == entity)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

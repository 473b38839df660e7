"""
Service du journal d'audit (ajout uniquement).

`record` ajoute la ligne à la session courante sans commit : elle est validée
dans la même transaction que la mutation qu'elle décrit.
"""

import uuid
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.models.audit import AuditLog
from schoolconnect.schemas.audit import AuditLogResponse
from schoolconnect.schemas.auth import RequestContext


def record(
    db: Session,
    ctx: RequestContext,
    action: str,
    entity_type: str,
    entity_id: Optional[uuid.UUID] = None,
    old_values: Optional[Any] = None,
    new_values: Optional[Any] = None,
) -> AuditLog:
    log = AuditLog(
        tenant_id=ctx.tenant_id,
        user_id=ctx.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=jsonable_encoder(old_values) if old_values is not None else None,
        new_values=jsonable_encoder(new_values) if new_values is not None else None,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )
    db.add(log)
    return log


def list_audit_logs(
    db: Session,
    tenant_id: uuid.UUID,
    entity_type: Optional[str] = None,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[AuditLogResponse]:
    """Retourne les dernières entrées du journal du tenant, de la plus récente à la plus ancienne."""
    query = select(AuditLog).where(AuditLog.tenant_id == tenant_id)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    logs = db.execute(
        query.order_by(AuditLog.created_at.desc()).limit(limit)
    ).scalars().all()
    return [AuditLogResponse.model_validate(log) for log in logs]

"""
Router du journal d'audit (lecture seule, administrateurs).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.schemas.audit import AuditLogResponse
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.services import audit_service

router = APIRouter(prefix="/api/audit-logs", tags=["Audit"])


@router.get("", response_model=List[AuditLogResponse], summary="Journal d'audit")
def list_audit_logs(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("audit", "read")),
    db: Session = Depends(get_db),
):
    return audit_service.list_audit_logs(db, ctx.tenant_id, entity_type, limit)

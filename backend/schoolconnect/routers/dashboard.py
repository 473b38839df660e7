"""
Router du tableau de bord.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.dashboard import DashboardStats
from schoolconnect.services import dashboard_service

router = APIRouter(prefix="/api/dashboard", tags=["Tableau de bord"])


@router.get("/stats", response_model=DashboardStats, summary="Indicateurs du tableau de bord")
def stats(
    ctx: RequestContext = Depends(require("dashboard", "read")),
    db: Session = Depends(get_db),
):
    return dashboard_service.get_stats(db, ctx)

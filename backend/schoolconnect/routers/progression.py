"""
Router pour les bilans de progression (écriture unique).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.progression import ProgressionCreate, ProgressionResponse
from schoolconnect.services import progression_service

router = APIRouter(prefix="/api/progression", tags=["Progression"])


@router.post("", response_model=ProgressionResponse, status_code=201, summary="Créer un bilan")
def create_snapshot(
    data: ProgressionCreate,
    ctx: RequestContext = Depends(require("progression", "create")),
    db: Session = Depends(get_db),
):
    """
    Enregistre le bilan d'un élève pour une période.
    Note globale et taux de présence sont calculés s'ils ne sont pas fournis.
    Un second bilan sur la même période retourne 409.
    """
    return progression_service.create_snapshot(db, ctx, data)

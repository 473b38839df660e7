"""
Router des établissements : onboarding et informations publiques du tenant courant.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import get_tenant
from schoolconnect.models.tenant import Tenant
from schoolconnect.schemas.tenant import TenantCreate, TenantOnboardingResponse, TenantResponse
from schoolconnect.services import tenant_service

router = APIRouter(prefix="/api/tenants", tags=["Établissements"])


@router.post("", response_model=TenantOnboardingResponse, status_code=201, summary="Inscrire un établissement")
def create_tenant(data: TenantCreate, db: Session = Depends(get_db)):
    """
    Crée l'établissement, son premier administrateur et un abonnement d'essai,
    puis retourne une session pour cet administrateur.
    """
    return tenant_service.create_tenant(db, data)


@router.get("/current", response_model=TenantResponse, summary="Établissement courant")
def current_tenant(tenant: Tenant = Depends(get_tenant)):
    """Informations publiques du tenant désigné par l'en-tête X-Tenant (page de connexion)."""
    return tenant

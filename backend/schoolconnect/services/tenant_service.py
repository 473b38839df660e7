"""
Service des établissements : résolution du tenant d'une requête et onboarding.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolconnect.exceptions import ConflictError, TenantIdentifierMissing, TenantNotFound
from schoolconnect.models.tenant import Tenant
from schoolconnect.models.user import User
from schoolconnect.schemas.auth import UserPublic
from schoolconnect.schemas.tenant import TenantCreate, TenantOnboardingResponse, TenantResponse
from schoolconnect.services import auth_service, subscription_service

logger = logging.getLogger(__name__)


def get_tenant_by_subdomain(db: Session, subdomain: str) -> Optional[Tenant]:
    return db.execute(
        select(Tenant).where(Tenant.subdomain == subdomain.strip().lower())
    ).scalar_one_or_none()


def resolve_tenant(db: Session, identifier: Optional[str]) -> Tenant:
    """
    Retrouve le tenant désigné par l'en-tête X-Tenant (ou ?tenant=).
    Lecture seule ; doit précéder tout traitement filtré par tenant.
    """
    if identifier is None or not identifier.strip():
        raise TenantIdentifierMissing()

    tenant = get_tenant_by_subdomain(db, identifier)
    if tenant is None:
        raise TenantNotFound()
    return tenant


def create_tenant(db: Session, data: TenantCreate) -> TenantOnboardingResponse:
    """
    Onboarding d'un établissement, en une seule transaction :
    1. Créer le tenant (sous-domaine unique)
    2. Créer le premier compte admin
    3. Ouvrir un abonnement d'essai
    Retourne le tenant et une session pour l'admin créé.
    """
    if get_tenant_by_subdomain(db, data.subdomain) is not None:
        raise ConflictError("Ce sous-domaine est déjà utilisé.")

    tenant = Tenant(
        name=data.name,
        subdomain=data.subdomain,
        contact_email=data.contact_email,
        phone=data.phone,
        address=data.address,
        settings={},
    )
    db.add(tenant)
    db.flush()  # Obtenir l'ID avant de créer l'admin

    admin = User(
        tenant_id=tenant.id,
        email=data.admin.email,
        password_hash=auth_service.hash_password(data.admin.password),
        first_name=data.admin.first_name,
        last_name=data.admin.last_name,
        role="admin",
        is_active=True,
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(admin)
    subscription_service.start_trial(db, tenant.id, billing_email=data.contact_email)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Ce sous-domaine est déjà utilisé.")
    db.refresh(tenant)
    db.refresh(admin)

    logger.info("Établissement créé : %s (%s)", tenant.subdomain, tenant.id)

    return TenantOnboardingResponse(
        tenant=TenantResponse.model_validate(tenant),
        token=auth_service.issue_session(admin.id, tenant.id, admin.role),
        user=UserPublic.model_validate(admin),
    )

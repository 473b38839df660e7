"""
Dépendances FastAPI de la chaîne de contrôle d'accès, dans l'ordre :

1. get_identity        : jeton Bearer valide, non révoqué, compte actif
2. get_tenant          : tenant désigné par l'en-tête X-Tenant (ou ?tenant=)
3. get_request_context : le tenant du jeton doit être celui de la requête
4. require(res, act)   : politique déclarative (schoolconnect.policy)
"""

import logging

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from schoolconnect import policy
from schoolconnect.config import settings
from schoolconnect.database import get_db
from schoolconnect.exceptions import InvalidSession, TenantMismatch, Unauthenticated
from schoolconnect.models.tenant import Tenant
from schoolconnect.schemas.auth import RequestContext, SessionIdentity
from schoolconnect.services import auth_service, tenant_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> SessionIdentity:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    identity = auth_service.verify_session(credentials.credentials)
    if auth_service.is_revoked(db, identity.jti):
        logger.warning("Jeton révoqué présenté par l'utilisateur %s", identity.user_id)
        raise InvalidSession()
    if auth_service.get_active_user(db, identity.user_id, identity.tenant_id) is None:
        logger.warning("Jeton d'un compte inactif ou supprimé : %s", identity.user_id)
        raise InvalidSession()
    return identity


def get_tenant(request: Request, db: Session = Depends(get_db)) -> Tenant:
    identifier = request.headers.get(settings.TENANT_HEADER) or request.query_params.get("tenant")
    return tenant_service.resolve_tenant(db, identifier)


def get_request_context(
    request: Request,
    identity: SessionIdentity = Depends(get_identity),
    tenant: Tenant = Depends(get_tenant),
) -> RequestContext:
    """Refuse sans exception un jeton émis pour un autre tenant (admin compris)."""
    if identity.tenant_id != tenant.id:
        logger.warning(
            "Tenant incohérent : utilisateur %s (tenant %s) sur le tenant %s",
            identity.user_id, identity.tenant_id, tenant.id,
        )
        raise TenantMismatch()

    return RequestContext(
        tenant_id=tenant.id,
        user_id=identity.user_id,
        role=identity.role,
        jti=identity.jti,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def require(resource: str, action: str):
    """Fabrique une dépendance qui applique la politique et retourne le contexte."""

    def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        policy.check(ctx, resource, action)
        return ctx

    return dependency


def page_limit(
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
) -> int:
    return limit

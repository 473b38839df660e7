"""
Router d'authentification : connexion, inscription, déconnexion, profil courant.
Connexion et inscription se font dans le tenant désigné par l'en-tête X-Tenant.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import get_identity, get_request_context, get_tenant
from schoolconnect.exceptions import InvalidSession
from schoolconnect.models.tenant import Tenant
from schoolconnect.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RequestContext,
    SessionIdentity,
    SessionResponse,
    UserPublic,
)
from schoolconnect.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["Authentification"])


@router.post("/login", response_model=SessionResponse, summary="Se connecter")
def login(data: LoginRequest, tenant: Tenant = Depends(get_tenant), db: Session = Depends(get_db)):
    """
    Authentifie un utilisateur du tenant et retourne un jeton de session (24h).
    Email inconnu et mot de passe erroné retournent la même erreur 401.
    """
    return auth_service.login(db, data.email, data.password, tenant.id)


@router.post("/register", response_model=SessionResponse, status_code=201, summary="Créer un compte")
def register(data: RegisterRequest, tenant: Tenant = Depends(get_tenant), db: Session = Depends(get_db)):
    """Crée un compte parent (par défaut) ou enseignant dans le tenant résolu."""
    return auth_service.register(db, data, tenant.id)


@router.post("/logout", status_code=204, summary="Se déconnecter")
def logout(
    ctx: RequestContext = Depends(get_request_context),
    identity: SessionIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    """Révoque le jeton courant : il est refusé dès la requête suivante."""
    auth_service.logout(db, identity)


@router.get("/me", response_model=UserPublic, summary="Profil de l'utilisateur connecté")
def me(ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    user = auth_service.get_active_user(db, ctx.user_id, ctx.tenant_id)
    if user is None:
        raise InvalidSession()
    return user

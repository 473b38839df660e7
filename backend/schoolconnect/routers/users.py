"""
Router de gestion des utilisateurs (administrateurs uniquement).
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.user import UserCreate, UserResponse, UserUpdate
from schoolconnect.services import user_service

router = APIRouter(prefix="/api/users", tags=["Utilisateurs"])


@router.get("", response_model=List[UserResponse], summary="Lister les utilisateurs")
def list_users(
    role: Optional[str] = Query(None),
    include_inactive: bool = Query(False, alias="includeInactive"),
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("users", "read")),
    db: Session = Depends(get_db),
):
    """Utilisateurs du tenant de l'admin connecté, filtrables par rôle."""
    return user_service.list_users(db, ctx.tenant_id, role, include_inactive, limit)


@router.post("", response_model=UserResponse, status_code=201, summary="Créer un utilisateur")
def create_user(
    data: UserCreate,
    ctx: RequestContext = Depends(require("users", "create")),
    db: Session = Depends(get_db),
):
    return user_service.create_user(db, ctx, data)


@router.get("/{user_id}", response_model=UserResponse, summary="Détail d'un utilisateur")
def get_user(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require("users", "read")),
    db: Session = Depends(get_db),
):
    return user_service.get_user(db, user_id, ctx.tenant_id)


@router.put("/{user_id}", response_model=UserResponse, summary="Modifier un utilisateur")
def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    ctx: RequestContext = Depends(require("users", "update")),
    db: Session = Depends(get_db),
):
    """Met à jour les champs fournis. Les champs absents ne sont pas modifiés."""
    return user_service.update_user(db, ctx, user_id, data)


@router.delete("/{user_id}", status_code=204, summary="Désactiver un utilisateur")
def deactivate_user(
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(require("users", "delete")),
    db: Session = Depends(get_db),
):
    """Désactivation logique : le compte est conservé pour l'historique."""
    user_service.deactivate_user(db, ctx, user_id)

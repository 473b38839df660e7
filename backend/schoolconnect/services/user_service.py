"""
Service de gestion des utilisateurs par les administrateurs du tenant.
Les comptes sont désactivés, jamais supprimés (continuité de l'audit).
"""

import uuid
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import NotFoundError, UserAlreadyExists, ValidationError
from schoolconnect.models.user import User
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.user import UserCreate, UserResponse, UserUpdate
from schoolconnect.services import audit_service, auth_service

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: uuid.UUID, tenant_id: uuid.UUID) -> User:
    user = db.execute(
        select(User).where(User.id == user_id, User.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError("Utilisateur introuvable.")
    return user


def list_users(
    db: Session,
    tenant_id: uuid.UUID,
    role: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[UserResponse]:
    """Retourne les utilisateurs du tenant, éventuellement filtrés par rôle."""
    query = select(User).where(User.tenant_id == tenant_id)
    if role:
        query = query.where(User.role == role)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    users = db.execute(
        query.order_by(User.last_name, User.first_name).limit(limit)
    ).scalars().all()
    return [UserResponse.model_validate(u) for u in users]


def get_user(db: Session, user_id: uuid.UUID, tenant_id: uuid.UUID) -> UserResponse:
    return UserResponse.model_validate(_get_user(db, user_id, tenant_id))


def create_user(db: Session, ctx: RequestContext, data: UserCreate) -> UserResponse:
    """Crée un compte (tout rôle, admin compris) dans le tenant de l'admin."""
    if auth_service.get_user_by_email(db, data.email, ctx.tenant_id) is not None:
        raise UserAlreadyExists()

    user = User(
        tenant_id=ctx.tenant_id,
        email=data.email,
        password_hash=auth_service.hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
        phone=data.phone,
        address=data.address,
        is_active=True,
    )
    db.add(user)
    db.flush()
    audit_service.record(
        db, ctx, "user.create", "user", user.id,
        new_values=data.model_dump(exclude={"password"}),
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise UserAlreadyExists()
    db.refresh(user)

    logger.info("Utilisateur %s (%s) créé par %s", user.id, user.role, ctx.user_id)
    return UserResponse.model_validate(user)


def update_user(db: Session, ctx: RequestContext, user_id: uuid.UUID, data: UserUpdate) -> UserResponse:
    """Met à jour les champs fournis. Un admin ne peut pas retirer son propre rôle admin."""
    user = _get_user(db, user_id, ctx.tenant_id)

    update_data = data.model_dump(exclude_unset=True)
    if user.id == ctx.user_id and update_data.get("role", "admin") != "admin":
        raise ValidationError("Impossible de modifier son propre rôle administrateur.")

    old = {field: getattr(user, field) for field in update_data}
    for field, value in update_data.items():
        setattr(user, field, value)

    audit_service.record(db, ctx, "user.update", "user", user.id, old_values=old, new_values=update_data)
    db.commit()
    db.refresh(user)
    return UserResponse.model_validate(user)


def deactivate_user(db: Session, ctx: RequestContext, user_id: uuid.UUID) -> None:
    """
    Désactivation logique (is_active → False). Idempotent.
    Ses sessions sont rejetées dès la requête suivante (voir get_identity).
    """
    user = _get_user(db, user_id, ctx.tenant_id)
    if user.id == ctx.user_id:
        raise ValidationError("Impossible de désactiver son propre compte.")
    if not user.is_active:
        return

    user.is_active = False
    audit_service.record(
        db, ctx, "user.deactivate", "user", user.id,
        old_values={"is_active": True}, new_values={"is_active": False},
    )
    db.commit()
    logger.info("Utilisateur %s désactivé par %s", user.id, ctx.user_id)


def active_user_ids(db: Session, tenant_id: uuid.UUID, user_ids: set[uuid.UUID]) -> set[uuid.UUID]:
    """Sous-ensemble des identifiants correspondant à des comptes actifs du tenant."""
    if not user_ids:
        return set()
    return set(db.execute(
        select(User.id).where(
            User.tenant_id == tenant_id,
            User.id.in_(user_ids),
            User.is_active.is_(True),
        )
    ).scalars().all())

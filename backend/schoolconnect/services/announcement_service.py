"""
Service métier pour les annonces du tenant.

Visibilité : une annonce sans audience (ou avec l'audience `all`) est visible par tout le
tenant ; `all_parents` et `all_teachers` la restreignent au rôle correspondant. Les
administrateurs et l'auteur voient toujours l'annonce.
"""

import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import exists, or_, select, update
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import NotFoundError
from schoolconnect.models.announcement import Announcement, AnnouncementAudience
from schoolconnect.schemas.announcement import (
    AnnouncementCreate,
    AnnouncementResponse,
    AnnouncementUpdate,
)
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.services import audit_service

logger = logging.getLogger(__name__)

# Audience → rôles destinataires (l'admin reçoit tout)
AUDIENCE_ROLES = {
    "all": {"admin", "teacher", "parent"},
    "all_parents": {"admin", "parent"},
    "all_teachers": {"admin", "teacher"},
}


def audience_roles(audiences: list[str]) -> set[str]:
    """Rôles destinataires d'une annonce, utilisés pour la diffusion temps réel."""
    if not audiences:
        return set(AUDIENCE_ROLES["all"])
    roles = set()
    for audience in audiences:
        roles |= AUDIENCE_ROLES.get(audience, set())
    return roles


def _visibility_clause(ctx: RequestContext):
    """Clause WHERE selon le rôle (None pour un admin)."""
    if ctx.role == "admin":
        return None
    accepted = [a for a, roles in AUDIENCE_ROLES.items() if ctx.role in roles]
    has_any_audience = exists().where(AnnouncementAudience.announcement_id == Announcement.id)
    matches_audience = exists().where(
        AnnouncementAudience.announcement_id == Announcement.id,
        AnnouncementAudience.audience_type.in_(accepted),
    )
    return or_(~has_any_audience, matches_audience, Announcement.author_id == ctx.user_id)


def _visible_query(ctx: RequestContext):
    query = select(Announcement).where(
        Announcement.tenant_id == ctx.tenant_id,
        Announcement.is_active.is_(True),
    )
    clause = _visibility_clause(ctx)
    if clause is not None:
        query = query.where(clause)
    return query


def _not_expired():
    return or_(Announcement.expires_at.is_(None), Announcement.expires_at > datetime.now(timezone.utc))


def _audiences_of(db: Session, announcement_id: uuid.UUID) -> list[str]:
    return list(db.execute(
        select(AnnouncementAudience.audience_type)
        .where(AnnouncementAudience.announcement_id == announcement_id)
        .order_by(AnnouncementAudience.audience_type)
    ).scalars().all())


def _to_response(db: Session, announcement: Announcement) -> AnnouncementResponse:
    response = AnnouncementResponse.model_validate(announcement)
    response.audiences = _audiences_of(db, announcement.id)
    return response


def _get_active(db: Session, tenant_id: uuid.UUID, announcement_id: uuid.UUID) -> Announcement:
    announcement = db.execute(
        select(Announcement).where(
            Announcement.id == announcement_id,
            Announcement.tenant_id == tenant_id,
            Announcement.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if announcement is None:
        raise NotFoundError("Annonce introuvable.")
    return announcement


def list_announcements(
    db: Session,
    ctx: RequestContext,
    category: Optional[str] = None,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[AnnouncementResponse]:
    """Annonces actives, non expirées et visibles par l'appelant, plus récentes d'abord."""
    query = _visible_query(ctx).where(_not_expired())
    if category:
        query = query.where(Announcement.category == category)
    announcements = db.execute(
        query.order_by(Announcement.created_at.desc(), Announcement.priority.desc()).limit(limit)
    ).scalars().all()
    return [_to_response(db, a) for a in announcements]


def get_announcement(db: Session, ctx: RequestContext, announcement_id: uuid.UUID) -> AnnouncementResponse:
    """Retourne une annonce visible et non expirée, et incrémente son compteur de vues."""
    announcement = db.execute(
        _visible_query(ctx).where(Announcement.id == announcement_id, _not_expired())
    ).scalar_one_or_none()
    if announcement is None:
        raise NotFoundError("Annonce introuvable.")

    # Incrément côté SQL pour ne pas perdre de vues concurrentes
    db.execute(
        update(Announcement)
        .where(Announcement.id == announcement.id, Announcement.tenant_id == ctx.tenant_id)
        .values(view_count=Announcement.view_count + 1)
    )
    db.commit()
    db.refresh(announcement)
    return _to_response(db, announcement)


def create_announcement(db: Session, ctx: RequestContext, data: AnnouncementCreate) -> AnnouncementResponse:
    """Crée une annonce. L'auteur et le tenant proviennent de la session."""
    announcement = Announcement(
        tenant_id=ctx.tenant_id,
        author_id=ctx.user_id,
        title=data.title,
        content=data.content,
        category=data.category,
        priority=data.priority,
        expires_at=data.expires_at,
        is_active=True,
        view_count=0,
    )
    db.add(announcement)
    db.flush()

    for audience in dict.fromkeys(data.audiences):
        db.add(AnnouncementAudience(
            tenant_id=ctx.tenant_id,
            announcement_id=announcement.id,
            audience_type=audience,
        ))

    audit_service.record(
        db, ctx, "announcement.create", "announcement", announcement.id,
        new_values=data.model_dump(),
    )
    db.commit()
    db.refresh(announcement)

    logger.info("Annonce %s publiée par %s", announcement.id, ctx.user_id)
    return _to_response(db, announcement)


def update_announcement(
    db: Session,
    ctx: RequestContext,
    announcement_id: uuid.UUID,
    data: AnnouncementUpdate,
) -> AnnouncementResponse:
    """Met à jour les champs fournis. Les audiences fournies remplacent les existantes."""
    announcement = _get_active(db, ctx.tenant_id, announcement_id)

    update_data = data.model_dump(exclude_unset=True)
    audiences = update_data.pop("audiences", None)

    old = {field: getattr(announcement, field) for field in update_data}
    for field, value in update_data.items():
        setattr(announcement, field, value)

    if audiences is not None:
        old["audiences"] = _audiences_of(db, announcement.id)
        for existing in db.execute(
            select(AnnouncementAudience).where(AnnouncementAudience.announcement_id == announcement.id)
        ).scalars().all():
            db.delete(existing)
        for audience in dict.fromkeys(audiences):
            db.add(AnnouncementAudience(
                tenant_id=ctx.tenant_id,
                announcement_id=announcement.id,
                audience_type=audience,
            ))

    audit_service.record(
        db, ctx, "announcement.update", "announcement", announcement.id,
        old_values=old, new_values=data.model_dump(exclude_unset=True),
    )
    db.commit()
    db.refresh(announcement)
    return _to_response(db, announcement)


def delete_announcement(db: Session, ctx: RequestContext, announcement_id: uuid.UUID) -> None:
    """
    Suppression logique (is_active → False). Idempotent : supprimer une annonce
    déjà inactive réussit sans modification.
    """
    announcement = db.execute(
        select(Announcement).where(
            Announcement.id == announcement_id,
            Announcement.tenant_id == ctx.tenant_id,
        )
    ).scalar_one_or_none()
    if announcement is None:
        raise NotFoundError("Annonce introuvable.")
    if not announcement.is_active:
        return

    announcement.is_active = False
    audit_service.record(
        db, ctx, "announcement.delete", "announcement", announcement.id,
        old_values={"is_active": True}, new_values={"is_active": False},
    )
    db.commit()

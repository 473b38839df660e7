"""
Router pour les annonces.
Chaque publication est diffusée en temps réel aux rôles de son audience.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.realtime import manager
from schoolconnect.schemas.announcement import AnnouncementCreate, AnnouncementResponse, AnnouncementUpdate
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.services import announcement_service

router = APIRouter(prefix="/api/announcements", tags=["Annonces"])


@router.get("", response_model=List[AnnouncementResponse], summary="Lister les annonces")
def list_announcements(
    category: Optional[str] = Query(None),
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("announcements", "read")),
    db: Session = Depends(get_db),
):
    """Annonces actives et non expirées visibles par l'utilisateur, plus récentes d'abord."""
    return announcement_service.list_announcements(db, ctx, category, limit)


@router.post("", response_model=AnnouncementResponse, status_code=201, summary="Publier une annonce")
def create_announcement(
    data: AnnouncementCreate,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(require("announcements", "create")),
    db: Session = Depends(get_db),
):
    announcement = announcement_service.create_announcement(db, ctx, data)
    background_tasks.add_task(
        manager.publish,
        ctx.tenant_id,
        "announcement",
        announcement,
        roles=announcement_service.audience_roles(announcement.audiences),
    )
    return announcement


@router.get("/{announcement_id}", response_model=AnnouncementResponse, summary="Lire une annonce")
def get_announcement(
    announcement_id: uuid.UUID,
    ctx: RequestContext = Depends(require("announcements", "read")),
    db: Session = Depends(get_db),
):
    """Retourne l'annonce et incrémente son compteur de vues."""
    return announcement_service.get_announcement(db, ctx, announcement_id)


@router.put("/{announcement_id}", response_model=AnnouncementResponse, summary="Modifier une annonce")
def update_announcement(
    announcement_id: uuid.UUID,
    data: AnnouncementUpdate,
    ctx: RequestContext = Depends(require("announcements", "update")),
    db: Session = Depends(get_db),
):
    return announcement_service.update_announcement(db, ctx, announcement_id, data)


@router.delete("/{announcement_id}", status_code=204, summary="Supprimer une annonce")
def delete_announcement(
    announcement_id: uuid.UUID,
    ctx: RequestContext = Depends(require("announcements", "delete")),
    db: Session = Depends(get_db),
):
    """Suppression logique, idempotente."""
    announcement_service.delete_announcement(db, ctx, announcement_id)

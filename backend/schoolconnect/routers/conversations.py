"""
Router pour la messagerie.
Chaque message envoyé est diffusé en temps réel aux autres participants.
"""

import uuid
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from schoolconnect.database import get_db
from schoolconnect.dependencies import page_limit, require
from schoolconnect.realtime import manager
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.messaging import (
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    ReadReceiptResponse,
)
from schoolconnect.services import messaging_service

router = APIRouter(prefix="/api/conversations", tags=["Messagerie"])


@router.get("", response_model=List[ConversationResponse], summary="Mes conversations")
def list_conversations(
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("conversations", "read")),
    db: Session = Depends(get_db),
):
    return messaging_service.list_conversations(db, ctx, limit)


@router.post("", response_model=ConversationResponse, status_code=201, summary="Démarrer une conversation")
def create_conversation(
    data: ConversationCreate,
    ctx: RequestContext = Depends(require("conversations", "create")),
    db: Session = Depends(get_db),
):
    """L'utilisateur connecté est ajouté automatiquement aux participants."""
    return messaging_service.create_conversation(db, ctx, data)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse], summary="Messages d'une conversation")
def list_messages(
    conversation_id: uuid.UUID,
    limit: int = Depends(page_limit),
    ctx: RequestContext = Depends(require("messages", "read")),
    db: Session = Depends(get_db),
):
    return messaging_service.list_messages(db, ctx, conversation_id, limit)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
    summary="Envoyer un message",
)
def send_message(
    conversation_id: uuid.UUID,
    data: MessageCreate,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(require("messages", "create")),
    db: Session = Depends(get_db),
):
    message, recipients = messaging_service.send_message(db, ctx, conversation_id, data)
    background_tasks.add_task(
        manager.publish,
        ctx.tenant_id,
        "new_message",
        message,
        user_ids=recipients,
        exclude_user_id=ctx.user_id,
    )
    return message


@router.post("/{conversation_id}/read", response_model=ReadReceiptResponse, summary="Marquer comme lu")
def mark_read(
    conversation_id: uuid.UUID,
    ctx: RequestContext = Depends(require("messages", "read")),
    db: Session = Depends(get_db),
):
    return messaging_service.mark_read(db, ctx, conversation_id)

"""
Service métier pour la messagerie.

Seuls les participants actifs d'une conversation peuvent lire ou écrire dedans ;
pour les autres utilisateurs (et les autres tenants), la conversation n'existe pas.
"""

import uuid
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from schoolconnect.config import settings
from schoolconnect.exceptions import NotFoundError, ValidationError
from schoolconnect.models.messaging import Conversation, ConversationParticipant, Message, MessageRead
from schoolconnect.schemas.auth import RequestContext
from schoolconnect.schemas.messaging import (
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
    ReadReceiptResponse,
)
from schoolconnect.services import audit_service, user_service

logger = logging.getLogger(__name__)


def _participant_ids(db: Session, conversation_id: uuid.UUID) -> list[uuid.UUID]:
    return list(db.execute(
        select(ConversationParticipant.user_id).where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.is_active.is_(True),
        )
    ).scalars().all())


def _to_response(db: Session, conversation: Conversation) -> ConversationResponse:
    response = ConversationResponse.model_validate(conversation)
    response.participant_ids = _participant_ids(db, conversation.id)
    return response


def _my_conversation_ids(ctx: RequestContext):
    return select(ConversationParticipant.conversation_id).where(
        ConversationParticipant.tenant_id == ctx.tenant_id,
        ConversationParticipant.user_id == ctx.user_id,
        ConversationParticipant.is_active.is_(True),
    )


def get_conversation_for_participant(
    db: Session,
    ctx: RequestContext,
    conversation_id: uuid.UUID,
) -> Conversation:
    """Conversation du tenant dont l'appelant est participant actif, sinon NotFoundError."""
    conversation = db.execute(
        select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.tenant_id == ctx.tenant_id,
            Conversation.id.in_(_my_conversation_ids(ctx)),
        )
    ).scalar_one_or_none()
    if conversation is None:
        raise NotFoundError("Conversation introuvable.")
    return conversation


def list_conversations(
    db: Session,
    ctx: RequestContext,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[ConversationResponse]:
    """Conversations de l'appelant, les plus récemment actives d'abord."""
    conversations = db.execute(
        select(Conversation)
        .where(
            Conversation.tenant_id == ctx.tenant_id,
            Conversation.id.in_(_my_conversation_ids(ctx)),
        )
        .order_by(Conversation.updated_at.desc())
        .limit(limit)
    ).scalars().all()
    return [_to_response(db, c) for c in conversations]


def create_conversation(db: Session, ctx: RequestContext, data: ConversationCreate) -> ConversationResponse:
    """
    Crée une conversation avec l'appelant et les participants demandés.
    Tous doivent être des comptes actifs du tenant. Conversation et participants
    sont validés dans une seule transaction.
    """
    requested = set(data.participant_ids) - {ctx.user_id}
    if not requested:
        raise ValidationError("Au moins un autre participant doit être sélectionné.")

    found = user_service.active_user_ids(db, ctx.tenant_id, requested)
    if found != requested:
        raise NotFoundError("Participant introuvable.")

    try:
        conversation = Conversation(
            tenant_id=ctx.tenant_id,
            title=data.title,
            is_group=len(requested) > 1,
            created_by=ctx.user_id,
        )
        db.add(conversation)
        db.flush()

        for user_id in [ctx.user_id, *sorted(requested)]:
            db.add(ConversationParticipant(
                tenant_id=ctx.tenant_id,
                conversation_id=conversation.id,
                user_id=user_id,
                is_active=True,
            ))

        audit_service.record(
            db, ctx, "conversation.create", "conversation", conversation.id,
            new_values={"participant_ids": sorted(requested)},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(conversation)
    logger.info("Conversation %s créée par %s", conversation.id, ctx.user_id)
    return _to_response(db, conversation)


def list_messages(
    db: Session,
    ctx: RequestContext,
    conversation_id: uuid.UUID,
    limit: int = settings.DEFAULT_PAGE_LIMIT,
) -> list[MessageResponse]:
    """Derniers messages de la conversation, dans l'ordre chronologique."""
    conversation = get_conversation_for_participant(db, ctx, conversation_id)
    messages = db.execute(
        select(Message)
        .where(Message.tenant_id == ctx.tenant_id, Message.conversation_id == conversation.id)
        .order_by(Message.created_at.desc())
        .limit(limit)
    ).scalars().all()
    return [MessageResponse.model_validate(m) for m in reversed(messages)]


def send_message(
    db: Session,
    ctx: RequestContext,
    conversation_id: uuid.UUID,
    data: MessageCreate,
) -> tuple[MessageResponse, list[uuid.UUID]]:
    """
    Envoie un message dans une conversation de l'appelant.
    Retourne le message et les destinataires à notifier (participants sauf l'expéditeur).
    """
    conversation = get_conversation_for_participant(db, ctx, conversation_id)

    message = Message(
        tenant_id=ctx.tenant_id,
        conversation_id=conversation.id,
        sender_id=ctx.user_id,
        content=data.content,
        message_type=data.message_type,
        attachments=[a.model_dump() for a in data.attachments] if data.attachments else None,
    )
    db.add(message)
    db.flush()
    conversation.updated_at = func.now()

    audit_service.record(db, ctx, "message.create", "message", message.id)
    db.commit()
    db.refresh(message)

    recipients = [uid for uid in _participant_ids(db, conversation.id) if uid != ctx.user_id]
    return MessageResponse.model_validate(message), recipients


def mark_read(db: Session, ctx: RequestContext, conversation_id: uuid.UUID) -> ReadReceiptResponse:
    """Marque comme lus tous les messages reçus de la conversation."""
    conversation = get_conversation_for_participant(db, ctx, conversation_id)

    already_read = select(MessageRead.message_id).where(MessageRead.user_id == ctx.user_id)
    unread_ids = db.execute(
        select(Message.id).where(
            Message.tenant_id == ctx.tenant_id,
            Message.conversation_id == conversation.id,
            Message.sender_id != ctx.user_id,
            Message.id.not_in(already_read),
        )
    ).scalars().all()

    for message_id in unread_ids:
        db.add(MessageRead(tenant_id=ctx.tenant_id, message_id=message_id, user_id=ctx.user_id))
    if unread_ids:
        audit_service.record(
            db, ctx, "conversation.read", "conversation", conversation.id,
            new_values={"marked_count": len(unread_ids)},
        )
        db.commit()

    return ReadReceiptResponse(conversation_id=conversation.id, marked_count=len(unread_ids))


def unread_count(db: Session, ctx: RequestContext) -> int:
    """Nombre de messages reçus non lus, toutes conversations de l'appelant confondues."""
    already_read = select(MessageRead.message_id).where(MessageRead.user_id == ctx.user_id)
    return db.execute(
        select(func.count())
        .select_from(Message)
        .where(
            Message.tenant_id == ctx.tenant_id,
            Message.conversation_id.in_(_my_conversation_ids(ctx)),
            Message.sender_id != ctx.user_id,
            Message.id.not_in(already_read),
        )
    ).scalar() or 0

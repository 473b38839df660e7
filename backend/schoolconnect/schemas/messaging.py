"""
Schémas Pydantic pour la messagerie.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from schoolconnect.schemas.base import CamelModel, not_blank


class Attachment(CamelModel):
    name: str
    url: str
    type: str
    size: int


class ConversationCreate(CamelModel):
    title: Optional[str] = None
    participant_ids: List[uuid.UUID]  # l'auteur est ajouté automatiquement

    @field_validator("participant_ids")
    @classmethod
    def at_least_one(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("Au moins un participant doit être sélectionné.")
        return v


class ConversationResponse(CamelModel):
    id: uuid.UUID
    title: Optional[str] = None
    is_group: bool
    created_by: uuid.UUID
    participant_ids: List[uuid.UUID] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessageCreate(CamelModel):
    content: str
    message_type: str = "text"
    attachments: Optional[List[Attachment]] = None

    @field_validator("content")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class MessageResponse(CamelModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    message_type: str
    attachments: Optional[List[Attachment]] = None
    created_at: Optional[datetime] = None


class ReadReceiptResponse(CamelModel):
    conversation_id: uuid.UUID
    marked_count: int

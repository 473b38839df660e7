"""
Schémas Pydantic pour les demandes des parents.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import field_validator

from schoolconnect.models.form_request import FORM_TYPES
from schoolconnect.schemas.base import CamelModel, not_blank

DECISION_STATUSES = {"approved", "rejected"}


class FormRequestCreate(CamelModel):
    student_id: uuid.UUID
    form_type: str
    title: str
    reason: str
    request_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("form_type")
    @classmethod
    def valid_form_type(cls, v: str) -> str:
        if v not in FORM_TYPES:
            raise ValueError(f"Type de formulaire invalide. Valeurs acceptées : {list(FORM_TYPES)}")
        return v

    @field_validator("title", "reason")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class FormRequestProcess(CamelModel):
    """Décision sur une demande : seuls les états terminaux sont acceptés."""
    status: str
    admin_notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def terminal_status(cls, v: str) -> str:
        if v not in DECISION_STATUSES:
            raise ValueError(f"Statut invalide. Valeurs acceptées : {sorted(DECISION_STATUSES)}")
        return v


class FormRequestResponse(CamelModel):
    id: uuid.UUID
    student_id: uuid.UUID
    parent_id: uuid.UUID
    form_type: str
    title: str
    reason: str
    request_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: str
    admin_notes: Optional[str] = None
    processed_by: Optional[uuid.UUID] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

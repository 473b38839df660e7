"""
Schémas Pydantic pour les annonces.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from schoolconnect.models.announcement import ANNOUNCEMENT_CATEGORIES, AUDIENCE_TYPES
from schoolconnect.schemas.base import CamelModel, not_blank, not_null


def _valid_category(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in ANNOUNCEMENT_CATEGORIES:
        raise ValueError(f"Catégorie invalide. Valeurs acceptées : {list(ANNOUNCEMENT_CATEGORIES)}")
    return v


def _valid_priority(v: Optional[int]) -> Optional[int]:
    if v is not None and not 1 <= v <= 3:
        raise ValueError("La priorité doit être comprise entre 1 et 3.")
    return v


def _valid_audiences(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is not None:
        unknown = set(v) - set(AUDIENCE_TYPES)
        if unknown:
            raise ValueError(f"Audience invalide. Valeurs acceptées : {list(AUDIENCE_TYPES)}")
    return v


class AnnouncementCreate(CamelModel):
    title: str
    content: str
    category: str = "general"
    priority: int = 1
    expires_at: Optional[datetime] = None
    audiences: List[str] = []  # vide = tout le tenant

    @field_validator("title", "content")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("category")
    @classmethod
    def valid_category(cls, v: str) -> str:
        return _valid_category(v)

    @field_validator("priority")
    @classmethod
    def valid_priority(cls, v: int) -> int:
        return _valid_priority(v)

    @field_validator("audiences")
    @classmethod
    def valid_audiences(cls, v: List[str]) -> List[str]:
        return _valid_audiences(v)


class AnnouncementUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[int] = None
    expires_at: Optional[datetime] = None
    audiences: Optional[List[str]] = None

    @field_validator("title", "content")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> Optional[str]:
        return not_blank(not_null(v))

    @field_validator("category")
    @classmethod
    def valid_category(cls, v: Optional[str]) -> Optional[str]:
        return _valid_category(not_null(v))

    @field_validator("priority")
    @classmethod
    def valid_priority(cls, v: Optional[int]) -> Optional[int]:
        return _valid_priority(not_null(v))

    @field_validator("audiences")
    @classmethod
    def valid_audiences(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _valid_audiences(v)


class AnnouncementResponse(CamelModel):
    id: uuid.UUID
    author_id: uuid.UUID
    title: str
    content: str
    category: str
    priority: int
    expires_at: Optional[datetime] = None
    is_active: bool
    view_count: int
    audiences: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

"""
Schémas Pydantic pour les catégories de notes, les devoirs et les résultats.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from schoolconnect.schemas.base import CamelModel, not_blank


class GradeCategoryCreate(CamelModel):
    classroom_id: uuid.UUID
    name: str
    weight: float  # pourcentage de la note finale
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("weight")
    @classmethod
    def valid_weight(cls, v: float) -> float:
        if not 0 < v <= 100:
            raise ValueError("Le poids doit être compris entre 0 (exclu) et 100.")
        return v


class GradeCategoryResponse(CamelModel):
    id: uuid.UUID
    classroom_id: uuid.UUID
    name: str
    weight: float
    description: Optional[str] = None
    is_active: bool


class AssignmentCreate(CamelModel):
    classroom_id: uuid.UUID
    category_id: uuid.UUID
    title: str
    description: Optional[str] = None
    max_points: float
    due_date: Optional[datetime] = None
    instructions: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("max_points")
    @classmethod
    def positive_points(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Le maximum de points doit être positif.")
        return v


class AssignmentResponse(CamelModel):
    id: uuid.UUID
    classroom_id: uuid.UUID
    category_id: uuid.UUID
    title: str
    description: Optional[str] = None
    max_points: float
    due_date: Optional[datetime] = None
    assigned_date: Optional[datetime] = None
    instructions: Optional[str] = None
    is_active: bool


class ScoreUpsert(CamelModel):
    """Corps de requête pour corriger un devoir. points = None : remis mais non noté."""
    points: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None

    @field_validator("points")
    @classmethod
    def non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("Les points ne peuvent pas être négatifs.")
        return v


class ScoreResponse(CamelModel):
    id: uuid.UUID
    assignment_id: uuid.UUID
    student_id: uuid.UUID
    points: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[uuid.UUID] = None


class GradeEntry(CamelModel):
    """Ligne du relevé de notes d'un élève."""
    assignment_id: uuid.UUID
    assignment_title: str
    category_name: str
    points: Optional[float] = None
    max_points: float
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    due_date: Optional[datetime] = None


class GradeReport(CamelModel):
    """Relevé de notes d'un élève avec sa moyenne pondérée (en %, None si aucune note)."""
    student_id: uuid.UUID
    weighted_average: Optional[float] = None
    entries: List[GradeEntry] = []

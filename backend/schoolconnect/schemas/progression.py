"""
Schémas Pydantic pour les bilans de progression.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from schoolconnect.schemas.base import CamelModel, not_blank


class Goal(CamelModel):
    description: str
    achieved: bool = False
    notes: Optional[str] = None


class ProgressionCreate(CamelModel):
    student_id: uuid.UUID
    classroom_id: uuid.UUID
    reporting_period: str
    overall_grade: Optional[float] = None    # calculé depuis les notes si absent
    attendance_rate: Optional[float] = None  # calculé depuis les présences si absent
    behavior_notes: Optional[str] = None
    academic_notes: Optional[str] = None
    goals: List[Goal] = []

    @field_validator("reporting_period")
    @classmethod
    def period_not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("overall_grade", "attendance_rate")
    @classmethod
    def percentage(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0 <= v <= 100:
            raise ValueError("La valeur doit être un pourcentage entre 0 et 100.")
        return v


class ProgressionResponse(CamelModel):
    id: uuid.UUID
    student_id: uuid.UUID
    classroom_id: uuid.UUID
    reporting_period: str
    overall_grade: Optional[float] = None
    attendance_rate: Optional[float] = None
    behavior_notes: Optional[str] = None
    academic_notes: Optional[str] = None
    goals: List[Goal] = []
    created_at: Optional[datetime] = None

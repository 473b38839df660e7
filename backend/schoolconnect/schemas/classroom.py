"""
Schémas Pydantic pour les écoles, les classes et les inscriptions.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, field_validator

from schoolconnect.schemas.base import CamelModel, not_blank


class SchoolCreate(CamelModel):
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    principal_name: Optional[str] = None
    grade_range: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return not_blank(v)


class SchoolResponse(CamelModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    principal_name: Optional[str] = None
    grade_range: Optional[str] = None


class ClassroomCreate(CamelModel):
    school_id: uuid.UUID
    teacher_id: uuid.UUID
    name: str
    grade: str
    subject: Optional[str] = None
    room: Optional[str] = None
    capacity: Optional[int] = None
    academic_year: str

    @field_validator("name", "grade", "academic_year")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)

    @field_validator("capacity")
    @classmethod
    def positive_capacity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("La capacité doit être positive.")
        return v


class ClassroomResponse(CamelModel):
    id: uuid.UUID
    school_id: uuid.UUID
    teacher_id: uuid.UUID
    name: str
    grade: str
    subject: Optional[str] = None
    room: Optional[str] = None
    capacity: Optional[int] = None
    academic_year: str
    is_active: bool
    nb_students: int = 0


class EnrollmentCreate(CamelModel):
    """Corps de requête pour inscrire des élèves dans une classe."""
    student_ids: List[uuid.UUID]

    @field_validator("student_ids")
    @classmethod
    def not_empty(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("La liste d'élèves ne peut pas être vide.")
        return v


class EnrollmentResponse(CamelModel):
    id: uuid.UUID
    student_id: uuid.UUID
    classroom_id: uuid.UUID
    enrolled_at: Optional[datetime] = None
    is_active: bool

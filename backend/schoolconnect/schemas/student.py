"""
Schémas Pydantic pour les élèves, le lien parent ↔ élève et l'import CSV.
"""

import uuid
import datetime as dt
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from schoolconnect.schemas.base import CamelModel, not_blank


class EmergencyContact(CamelModel):
    name: str
    phone: str
    relationship: str


class StudentCreate(CamelModel):
    student_number: str
    first_name: str
    last_name: str
    date_of_birth: Optional[dt.date] = None
    grade: str
    emergency_contact: Optional[EmergencyContact] = None
    medical_info: Optional[str] = None

    @field_validator("student_number", "first_name", "last_name", "grade")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class StudentResponse(CamelModel):
    id: uuid.UUID
    student_number: str
    first_name: str
    last_name: str
    date_of_birth: Optional[dt.date] = None
    grade: str
    emergency_contact: Optional[EmergencyContact] = None
    medical_info: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class ParentLinkCreate(CamelModel):
    parent_id: uuid.UUID
    relationship: str = "parent"
    is_primary: bool = False

    @field_validator("relationship")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return not_blank(v)


class ParentLinkResponse(CamelModel):
    id: uuid.UUID
    parent_id: uuid.UUID
    student_id: uuid.UUID
    relationship: str
    is_primary: bool


class StudentImportRow(CamelModel):
    """Représente une ligne valide du CSV après parsing."""
    student_number: str
    first_name: str
    last_name: str
    date_of_birth: Optional[dt.date] = None
    grade: str
    classroom_name: Optional[str] = None  # colonne CSV optionnelle `classe`


class ImportRowError(CamelModel):
    """Détail d'une ligne rejetée lors de l'import."""
    row: int
    content: str
    reason: str


class StudentImportReport(CamelModel):
    """Rapport retourné après un import CSV."""
    total_rows: int
    inserted: int
    rejected: int
    duplicates_in_file: int
    duplicates_in_db: int
    errors: List[ImportRowError]

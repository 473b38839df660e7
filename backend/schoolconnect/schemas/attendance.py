"""
Schémas Pydantic pour les présences en classe.

Note : on importe datetime en tant que module (dt) pour éviter le conflit de nommage
entre le champ `date` et le type `datetime.date` dans Pydantic v2.
"""

import uuid
import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import field_validator

from schoolconnect.models.attendance import ATTENDANCE_STATUSES
from schoolconnect.schemas.base import CamelModel, not_null


def _valid_status(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in ATTENDANCE_STATUSES:
        raise ValueError(f"Statut invalide. Valeurs acceptées : {list(ATTENDANCE_STATUSES)}")
    return v


class AttendanceCreate(CamelModel):
    student_id: uuid.UUID
    classroom_id: uuid.UUID
    date: dt.date
    status: str
    arrival_time: Optional[datetime] = None  # uniquement present / late
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        return _valid_status(v)


class AttendanceUpdate(CamelModel):
    status: Optional[str] = None
    arrival_time: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: Optional[str]) -> Optional[str]:
        return _valid_status(not_null(v))


class AttendanceResponse(CamelModel):
    id: uuid.UUID
    student_id: uuid.UUID
    classroom_id: uuid.UUID
    date: dt.date
    status: str
    arrival_time: Optional[datetime] = None
    notes: Optional[str] = None
    marked_by: uuid.UUID
    created_at: Optional[datetime] = None

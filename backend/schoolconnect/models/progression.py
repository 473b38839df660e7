"""
Modèle SQLAlchemy pour les bilans de progression.
Enregistrement en écriture unique : jamais recalculé ni modifié.
"""

import uuid
from sqlalchemy import (
    JSON, Column, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid, func,
)

from schoolconnect.database import Base


class ProgressionSnapshot(Base):
    __tablename__ = "progression_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "student_id", "classroom_id", "reporting_period",
            name="uq_progression_period",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    reporting_period = Column(String(50), nullable=False)  # quarter_1, semester_1...
    overall_grade = Column(Numeric(5, 2), nullable=True)
    attendance_rate = Column(Numeric(5, 2), nullable=True)
    behavior_notes = Column(Text, nullable=True)
    academic_notes = Column(Text, nullable=True)
    goals = Column(JSON, nullable=True)  # [{description, achieved, notes}]
    created_at = Column(DateTime, server_default=func.now())

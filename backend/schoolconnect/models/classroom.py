"""
Modèles SQLAlchemy pour les classes et les inscriptions des élèves.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid, func

from schoolconnect.database import Base


class Classroom(Base):
    __tablename__ = "classrooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(Uuid, ForeignKey("schools.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    grade = Column(String(10), nullable=False)
    subject = Column(String(100), nullable=True)
    room = Column(String(50), nullable=True)
    capacity = Column(Integer, nullable=True)
    academic_year = Column(String(20), nullable=False)  # Ex: "2025-2026"
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Enrollment(Base):
    """Inscription élève ↔ classe, bornée dans le temps par is_active."""
    __tablename__ = "enrollments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False)
    enrolled_at = Column(DateTime, server_default=func.now())
    is_active = Column(Boolean, default=True, nullable=False)
